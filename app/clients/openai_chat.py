"""OpenAI chat completions REST client."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests import Response

from app.config import Settings

LOGGER = logging.getLogger(__name__)


class OpenAIError(RuntimeError):
    """Raised when the OpenAI API returns an error or cannot be reached."""


class OpenAIChatClient:
    """Small HTTP client that sends a single user message and returns the reply."""

    def __init__(self, settings: Settings, timeout: float = 60) -> None:
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for the chat client")
        self.model = settings.openai_model
        self._url = f"{settings.openai_base_url}/chat/completions"
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {settings.openai_api_key}",
                "Content-Type": "application/json",
            }
        )

    def complete(self, prompt: str) -> Optional[str]:
        """Return the first choice's content, or ``None`` when no choice came back."""

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        LOGGER.info("sending chat completion", extra={"model": self.model})
        try:
            response = self._session.post(self._url, json=body, timeout=self._timeout)
        except requests.RequestException as exc:
            LOGGER.error("openai request failed", extra={"detail": str(exc)})
            raise OpenAIError(f"OpenAI API unreachable: {exc}") from exc
        self._raise_for_status(response)

        choices = response.json().get("choices") or []
        if not choices:
            return None
        return (choices[0].get("message") or {}).get("content") or ""

    def _raise_for_status(self, response: Response) -> None:
        """Raise descriptive errors for OpenAI responses."""

        if response.ok:
            return
        status = response.status_code
        detail = response.text
        if status == 401:
            message = "Unauthorized: verify OPENAI_API_KEY."
        elif status == 429:
            message = "OpenAI rate limit or quota exceeded."
        else:
            message = f"OpenAI API error ({status})."
        LOGGER.error("openai request failed", extra={"status": status, "detail": detail})
        raise OpenAIError(f"{message} Response: {detail[:200]}")
