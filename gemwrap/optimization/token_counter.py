"""
gemwrap Token Counter Module

Heuristic token estimation, budget enforcement, and cost calculation for
Gemini requests. Estimation runs locally before a request is sent, so it is a
pure function of the input text with no tokenizer download or network access.

Key Features:
- Script-aware estimation (dense CJK-family characters cost more per char)
- Exact integer arithmetic so estimates are reproducible bit for bit
- Budget validation with a reserved margin for the model's output
- Proportional truncation that always lands inside the budget
- Per-model pricing with input/output differentiation
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from ..core.exceptions import ErrorKind, GenerationError
from ..core.models import DEFAULT_MODEL


logger = logging.getLogger(__name__)

DEFAULT_RESERVED_TOKENS = 2000
TRUNCATION_MARKER = "..."

# Hangul (syllables, jamo, compatibility jamo), Hiragana, Katakana,
# CJK unified ideographs (+ extension A) and CJK compatibility ideographs.
_DENSE_SCRIPT_PATTERN = re.compile(
    "["
    "\u1100-\u11ff"
    "\u3040-\u309f"
    "\u30a0-\u30ff"
    "\u3130-\u318f"
    "\u3400-\u4dbf"
    "\u4e00-\u9fff"
    "\uac00-\ud7a3"
    "\uf900-\ufaff"
    "]"
)

# 1 token per 2.5 dense chars and per 4 other chars: ceil(d/2.5 + o/4) == ceil((8d + 5o) / 20)
_DENSE_WEIGHT = 8
_OTHER_WEIGHT = 5
_WEIGHT_DIVISOR = 20


@dataclass(frozen=True)
class TokenBudgetResult:
    """Outcome of fitting a prompt into a token budget."""

    text: str
    estimated_tokens: int
    original_tokens: int
    truncated: bool


@dataclass
class CostBreakdown:
    """Detailed cost breakdown for LLM usage."""

    input_tokens: int
    output_tokens: int
    input_cost_usd: float
    output_cost_usd: float
    total_cost_usd: float
    model_name: str
    calculated_at: datetime


# USD per 1K tokens
PRICING: Dict[str, Dict[str, float]] = {
    "gemini-2.0-flash-001": {
        "input_per_1k": 0.00001875,
        "output_per_1k": 0.0000075,
    },
    "gemini-1.5-pro": {
        "input_per_1k": 0.000125,
        "output_per_1k": 0.000375,
    },
}


def count_dense_characters(text: str) -> int:
    """Return how many characters of ``text`` belong to a dense script."""
    return len(_DENSE_SCRIPT_PATTERN.findall(text))


def estimate_tokens(text: Optional[str]) -> int:
    """
    Estimate the number of tokens Gemini will bill for ``text``.

    Args:
        text: Any text; ``None`` and ``""`` cost nothing

    Returns:
        ``0`` for empty input, otherwise an estimate of at least ``1``
    """
    if not text:
        return 0
    dense = count_dense_characters(text)
    other = len(text) - dense
    weighted = _DENSE_WEIGHT * dense + _OTHER_WEIGHT * other
    return max(1, -(-weighted // _WEIGHT_DIVISOR))


def validate_token_limit(
    input_tokens: int,
    max_tokens: int = 8192,
    reserved_tokens: int = DEFAULT_RESERVED_TOKENS,
) -> bool:
    """Return ``True`` when ``input_tokens`` leaves ``reserved_tokens`` free for output."""
    return input_tokens <= max_tokens - reserved_tokens


def fit_to_token_budget(
    text: str,
    max_tokens: int,
    reserved_tokens: int = DEFAULT_RESERVED_TOKENS,
) -> TokenBudgetResult:
    """
    Truncate ``text`` so its estimate fits ``max_tokens - reserved_tokens``.

    The cut is proportional to the overshoot and a truncation marker is
    appended. Mixed-script text can still overshoot after the first cut, so the
    text keeps shrinking until it fits.

    Args:
        text: Sanitized prompt text
        max_tokens: Total token ceiling for the request
        reserved_tokens: Tokens kept free for the model's output

    Returns:
        The text to send with its token estimate

    Raises:
        GenerationError: ``TOKEN_LIMIT_EXCEEDED`` when no text fits the budget
    """
    estimated = estimate_tokens(text)
    if validate_token_limit(estimated, max_tokens, reserved_tokens):
        return TokenBudgetResult(
            text=text,
            estimated_tokens=estimated,
            original_tokens=estimated,
            truncated=False,
        )

    allowed = max_tokens - reserved_tokens
    if allowed < estimate_tokens(TRUNCATION_MARKER):
        raise GenerationError(
            ErrorKind.TOKEN_LIMIT_EXCEEDED,
            f"Token budget of {max_tokens} leaves no room for input after reserving {reserved_tokens}",
            context={"estimated_tokens": estimated, "max_tokens": max_tokens},
        )

    target_length = (len(text) * allowed) // estimated
    adjusted = text[:target_length] + TRUNCATION_MARKER
    adjusted_tokens = estimate_tokens(adjusted)
    while adjusted_tokens > allowed and target_length > 0:
        shrunk = (target_length * allowed) // adjusted_tokens
        target_length = min(shrunk, target_length - 1)
        adjusted = text[:target_length] + TRUNCATION_MARKER
        adjusted_tokens = estimate_tokens(adjusted)

    logger.warning(
        "Prompt truncated to fit token budget",
        extra={
            "original_tokens": estimated,
            "adjusted_tokens": adjusted_tokens,
            "allowed_tokens": allowed,
        },
    )
    return TokenBudgetResult(
        text=adjusted,
        estimated_tokens=adjusted_tokens,
        original_tokens=estimated,
        truncated=True,
    )


# Typical output length relative to the prompt, used for cost estimates.
OUTPUT_TO_INPUT_RATIO = 0.5


def estimate_prompt_cost(
    prompt: str,
    model: str = DEFAULT_MODEL,
    max_output_tokens: int = 8192,
) -> CostBreakdown:
    """Estimate what sending ``prompt`` would cost, assuming a proportional reply."""
    input_tokens = estimate_tokens(prompt)
    output_tokens = min(max_output_tokens, input_tokens * OUTPUT_TO_INPUT_RATIO)
    return calculate_cost(input_tokens, output_tokens, model)


def get_model_pricing(model: str) -> Dict[str, float]:
    """Return per-1K pricing for ``model``, falling back to the default model."""
    normalized = model[len("models/"):] if model.startswith("models/") else model
    return PRICING.get(normalized, PRICING[DEFAULT_MODEL])


def calculate_cost(
    input_tokens: float,
    output_tokens: float,
    model: str = DEFAULT_MODEL,
) -> CostBreakdown:
    """
    Calculate the USD cost of a request.

    Args:
        input_tokens: Prompt tokens
        output_tokens: Generated tokens (may be fractional for estimates)
        model: Gemini model name

    Returns:
        Cost breakdown for input and output
    """
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError("Token counts cannot be negative")

    pricing = get_model_pricing(model)
    input_cost = (input_tokens / 1000) * pricing["input_per_1k"]
    output_cost = (output_tokens / 1000) * pricing["output_per_1k"]
    return CostBreakdown(
        input_tokens=int(input_tokens),
        output_tokens=int(output_tokens),
        input_cost_usd=input_cost,
        output_cost_usd=output_cost,
        total_cost_usd=input_cost + output_cost,
        model_name=model,
        calculated_at=datetime.now(timezone.utc),
    )


__all__ = [
    "DEFAULT_RESERVED_TOKENS",
    "TRUNCATION_MARKER",
    "PRICING",
    "TokenBudgetResult",
    "CostBreakdown",
    "count_dense_characters",
    "estimate_tokens",
    "validate_token_limit",
    "fit_to_token_budget",
    "get_model_pricing",
    "calculate_cost",
    "estimate_prompt_cost",
    "OUTPUT_TO_INPUT_RATIO",
]
