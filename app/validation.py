"""Input checks for chatbot queries.

These checks keep obviously malformed or abusive text away from the LLM call
to bound cost. They are advisory hygiene only: a keyword denylist and a
repeated-character check will not stop a determined attacker and must not be
treated as a security boundary.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_MAX_LENGTH = 500
DEFAULT_MAX_REPEAT = 10

DENYLIST_PATTERN = re.compile(
    r"(hack|exploit|attack|inject|<script|javascript:|data:|vbscript:)",
    re.IGNORECASE,
)


class Rejection(str, Enum):
    EMPTY = "empty"
    TOO_LONG = "too_long"
    REPEATED_CHARACTERS = "repeated_characters"
    DENYLISTED_PATTERN = "denylisted_pattern"


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: Optional[str] = None
    rejection: Optional[Rejection] = None

    @classmethod
    def reject(cls, rejection: Rejection, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason, rejection=rejection)


PASSED = ValidationResult(ok=True)


def longest_run(text: str) -> int:
    """Return the length of the longest run of one repeated character."""

    longest = 0
    current = 0
    previous = None
    for char in text:
        if char == previous:
            current += 1
        else:
            current = 1
            previous = char
        if current > longest:
            longest = current
    return longest


def validate_query(
    text: str,
    *,
    max_length: int = DEFAULT_MAX_LENGTH,
    max_repeat: int = DEFAULT_MAX_REPEAT,
) -> ValidationResult:
    """Validate a chatbot query, stopping at the first failed check."""

    if not text.strip():
        return ValidationResult.reject(Rejection.EMPTY, "input cannot be empty")
    if len(text) > max_length:
        return ValidationResult.reject(
            Rejection.TOO_LONG, f"input too long (max {max_length} characters)"
        )
    if longest_run(text) > max_repeat:
        return ValidationResult.reject(
            Rejection.REPEATED_CHARACTERS, "input contains too many repeated characters"
        )
    if DENYLIST_PATTERN.search(text):
        return ValidationResult.reject(
            Rejection.DENYLISTED_PATTERN, "input contains disallowed content"
        )
    return PASSED
