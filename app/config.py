"""Application settings and environment loading utilities."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _load_dotenv() -> None:
    env_path = Path(".env")
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"'))


_load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration derived from environment variables."""

    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "portfolio"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: str = "https://api.openai.com/v1"
    portfolio_owner: str = "the portfolio owner"
    assistant_name: str = "PORTFOLIOBOT"
    port: int = 8080
    cache_ttl_seconds: int = 60
    chatbot_rate_limit_per_minute: int = 3
    chatbot_rate_limit_per_window: int = 10
    chatbot_rate_limit_window_seconds: int = 300
    rate_limit_cleanup_seconds: int = 300
    chatbot_max_input_length: int = 500
    context_max_chars: int = 8000

    @property
    def chatbot_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def model_label(self) -> str:
        """Model name for log lines, ``DISABLED`` when the chatbot is off."""

        return self.openai_model if self.chatbot_enabled else "DISABLED"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mongodb_uri=os.getenv("MONGODB_URI") or cls.mongodb_uri,
            mongodb_database=os.getenv("MONGODB_DATABASE") or cls.mongodb_database,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL") or cls.openai_model,
            openai_base_url=(os.getenv("OPENAI_BASE_URL") or cls.openai_base_url).rstrip("/"),
            portfolio_owner=os.getenv("PORTFOLIO_OWNER") or cls.portfolio_owner,
            assistant_name=os.getenv("ASSISTANT_NAME") or cls.assistant_name,
            port=_int_env("PORT", cls.port),
            cache_ttl_seconds=_int_env("CACHE_TTL_SECONDS", cls.cache_ttl_seconds),
            chatbot_rate_limit_per_minute=_int_env(
                "CHATBOT_RATE_LIMIT_PER_MINUTE", cls.chatbot_rate_limit_per_minute
            ),
            chatbot_rate_limit_per_window=_int_env(
                "CHATBOT_RATE_LIMIT_PER_WINDOW", cls.chatbot_rate_limit_per_window
            ),
            chatbot_rate_limit_window_seconds=_int_env(
                "CHATBOT_RATE_LIMIT_WINDOW_SECONDS", cls.chatbot_rate_limit_window_seconds
            ),
            rate_limit_cleanup_seconds=_int_env(
                "RATE_LIMIT_CLEANUP_SECONDS", cls.rate_limit_cleanup_seconds
            ),
            chatbot_max_input_length=_int_env(
                "CHATBOT_MAX_INPUT_LENGTH", cls.chatbot_max_input_length
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings.from_env()
