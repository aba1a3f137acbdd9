"""Portfolio API package: settings, logging and the chatbot admission checks."""

from .config import Settings, get_settings
from .logging_config import configure_logging
from .rate_limit import RateLimiter
from .validation import validate_query

__all__ = ["Settings", "get_settings", "configure_logging", "RateLimiter", "validate_query"]
