"""
gemwrap Optimization Module

Local, network-free preparation of prompts: whitespace sanitization, token
estimation and budgeting, and cost calculation.
"""

from .text_sanitizer import MAX_TEXT_LENGTH, sanitize_text
from .token_counter import (
    DEFAULT_RESERVED_TOKENS,
    PRICING,
    TRUNCATION_MARKER,
    CostBreakdown,
    OUTPUT_TO_INPUT_RATIO,
    TokenBudgetResult,
    calculate_cost,
    estimate_prompt_cost,
    estimate_tokens,
    fit_to_token_budget,
    validate_token_limit,
)

__all__ = [
    # Text Sanitizer
    "MAX_TEXT_LENGTH",
    "sanitize_text",
    # Token Counter
    "DEFAULT_RESERVED_TOKENS",
    "PRICING",
    "TRUNCATION_MARKER",
    "CostBreakdown",
    "TokenBudgetResult",
    "calculate_cost",
    "estimate_prompt_cost",
    "OUTPUT_TO_INPUT_RATIO",
    "estimate_tokens",
    "fit_to_token_budget",
    "validate_token_limit",
]
