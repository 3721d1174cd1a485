"""Prompt normalisation applied before text is sent to Gemini."""

from __future__ import annotations

import re
from typing import Optional

MAX_TEXT_LENGTH = 100_000
TAB_REPLACEMENT = "  "

_LINE_ENDINGS = re.compile(r"\r\n?")
_TRAILING_WHITESPACE = re.compile(r"[^\S\n]+\n")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def sanitize_text(text: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """Normalise whitespace and clamp ``text`` to ``max_length`` characters.

    Line endings become ``\\n``, tabs become two spaces, whitespace before a
    newline is dropped and blank-line runs collapse to a single blank line.
    ``sanitize_text(sanitize_text(x)) == sanitize_text(x)`` for any input.
    """

    if not text:
        return ""

    cleaned = text.strip()
    cleaned = _LINE_ENDINGS.sub("\n", cleaned)
    cleaned = cleaned.replace("\t", TAB_REPLACEMENT)
    cleaned = _TRAILING_WHITESPACE.sub("\n", cleaned)
    cleaned = _EXCESS_NEWLINES.sub("\n\n", cleaned)
    if len(cleaned) > max_length:
        # The cut can expose trailing whitespace.
        cleaned = cleaned[:max_length].rstrip()
    return cleaned


__all__ = ["MAX_TEXT_LENGTH", "sanitize_text"]
