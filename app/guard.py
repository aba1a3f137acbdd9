"""Admission control for the chatbot endpoint."""
from __future__ import annotations

import logging

from app.rate_limit import RateLimiter
from app.validation import DEFAULT_MAX_LENGTH, Rejection, validate_query

LOGGER = logging.getLogger(__name__)


class ChatbotRejected(Exception):
    """Base class for requests refused before reaching the LLM."""


class RateLimited(ChatbotRejected):
    """Raised when a client exceeds the chatbot rate limits."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Rate limit exceeded for {identifier}")
        self.identifier = identifier


class InvalidInput(ChatbotRejected):
    """Raised when the query text fails validation."""

    def __init__(self, rejection: Rejection, reason: str) -> None:
        super().__init__(reason)
        self.rejection = rejection
        self.reason = reason


class ChatbotGuard:
    """Applies the rate limiter, then the input checks.

    Rate limiting runs first so rejected input still counts against the
    client's quota.
    """

    def __init__(self, rate_limiter: RateLimiter, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self.rate_limiter = rate_limiter
        self.max_length = max_length

    def check(self, identifier: str, text: str) -> None:
        if not self.rate_limiter.is_allowed(identifier):
            LOGGER.warning("rate limit exceeded", extra={"client_ip": identifier})
            raise RateLimited(identifier)

        result = validate_query(text, max_length=self.max_length)
        if not result.ok:
            LOGGER.warning(
                "invalid chatbot input",
                extra={"client_ip": identifier, "detail": result.rejection.value},
            )
            raise InvalidInput(result.rejection, result.reason)
