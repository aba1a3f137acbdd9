from __future__ import annotations

import pytest

from app.guard import ChatbotGuard, InvalidInput, RateLimited
from app.rate_limit import RateLimiter
from app.validation import Rejection, longest_run, validate_query


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_input_is_rejected_as_empty(text):
    result = validate_query(text)

    assert not result.ok
    assert result.rejection is Rejection.EMPTY
    assert result.reason == "input cannot be empty"


def test_length_limit_is_inclusive():
    text = "ab" * 250

    assert validate_query(text).ok
    result = validate_query(text + "a")
    assert result.rejection is Rejection.TOO_LONG
    assert "500" in result.reason


def test_five_hundred_one_repeated_characters_report_length_first():
    result = validate_query("a" * 501)

    assert result.rejection is Rejection.TOO_LONG


def test_length_counts_surrounding_whitespace():
    text = " " * 10 + "x" * 5 + " " * 10 + "ab" * 240

    assert len(text) == 505
    assert validate_query(text).rejection is Rejection.TOO_LONG


def test_repeated_character_run():
    assert validate_query("a" * 10).ok
    assert validate_query("hello " + "a" * 11 + " world").rejection is Rejection.REPEATED_CHARACTERS


def test_runs_reset_on_different_character():
    text = ("x" * 10 + "y") * 5

    assert validate_query(text).ok


def test_longest_run():
    assert longest_run("") == 0
    assert longest_run("abc") == 1
    assert longest_run("aabbbbc") == 4


@pytest.mark.parametrize(
    "text",
    [
        "please hack the system",
        "HACK",
        "how to Exploit this",
        "attack plan",
        "sql injection",
        "<SCRIPT>alert(1)</script>",
        "click javascript:alert(1)",
        "data:text/html;base64,AAAA",
        "VBScript:msgbox",
    ],
)
def test_denylisted_patterns_are_rejected(text):
    result = validate_query(text)

    assert result.rejection is Rejection.DENYLISTED_PATTERN


def test_ordinary_question_passes():
    result = validate_query("What projects used Python and FastAPI?")

    assert result.ok
    assert result.reason is None


def test_guard_rate_limits_before_validating():
    guard = ChatbotGuard(RateLimiter(short_limit=1))
    guard.check("client", "first question")

    with pytest.raises(RateLimited):
        guard.check("client", "")


def test_guard_rejected_input_consumes_quota():
    limiter = RateLimiter()
    guard = ChatbotGuard(limiter)

    with pytest.raises(InvalidInput) as excinfo:
        guard.check("client", "hack")

    assert excinfo.value.rejection is Rejection.DENYLISTED_PATTERN
    assert len(limiter.window("client")) == 1


def test_guard_respects_max_length():
    guard = ChatbotGuard(RateLimiter(), max_length=10)

    with pytest.raises(InvalidInput) as excinfo:
        guard.check("client", "x" * 5 + "y" * 6)

    assert excinfo.value.rejection is Rejection.TOO_LONG
