from __future__ import annotations

import pytest

from gemwrap.optimization import MAX_TEXT_LENGTH, sanitize_text


def test_sanitize_normalises_whitespace() -> None:
    assert sanitize_text("a\r\nb\t\tc\n\n\n\nd") == "a\nb    c\n\nd"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", ""),
        (None, ""),
        ("   \n\t ", ""),
        ("  hello  ", "hello"),
        ("a\rb", "a\nb"),
        ("line one   \nline two", "line one\nline two"),
        ("a\n\nb", "a\n\nb"),
        ("a\n \n \n \nb", "a\n\nb"),
    ],
)
def test_sanitize_cases(raw, expected) -> None:
    assert sanitize_text(raw) == expected


def test_sanitize_truncates_to_hard_ceiling() -> None:
    assert len(sanitize_text("x" * (MAX_TEXT_LENGTH + 50))) == MAX_TEXT_LENGTH


def test_truncation_does_not_leave_trailing_whitespace() -> None:
    assert sanitize_text("abc   def", max_length=6) == "abc"


@pytest.mark.parametrize(
    "raw",
    [
        "a\r\nb\t\tc\n\n\n\nd",
        " \t mixed \r\n\r\n\r\n content\t\n",
        "abc   def",
        "\n\n\nstart and end\n\n\n",
    ],
)
def test_sanitize_is_idempotent(raw) -> None:
    once = sanitize_text(raw)
    assert sanitize_text(once) == once
    short = sanitize_text(raw, max_length=6)
    assert sanitize_text(short, max_length=6) == short
