"""Core models and exceptions for gemwrap."""

from .exceptions import (
    RETRYABLE_KINDS,
    USER_MESSAGES,
    ClientNotInitializedError,
    ConfigurationError,
    ErrorKind,
    GemwrapError,
    GenerationError,
    classify_error,
    get_user_friendly_message,
    is_retryable,
)
from .models import (
    DEFAULT_MODEL,
    AppConfig,
    FinishReason,
    GeminiConfig,
    GenerationRequest,
    GenerationResult,
    HarmProbability,
    SafetyRating,
    TokenUsage,
    UsageRecord,
    UsageSummary,
)

__all__ = [
    "RETRYABLE_KINDS",
    "USER_MESSAGES",
    "ClientNotInitializedError",
    "ConfigurationError",
    "ErrorKind",
    "GemwrapError",
    "GenerationError",
    "classify_error",
    "get_user_friendly_message",
    "is_retryable",
    "DEFAULT_MODEL",
    "AppConfig",
    "FinishReason",
    "GeminiConfig",
    "GenerationRequest",
    "GenerationResult",
    "HarmProbability",
    "SafetyRating",
    "TokenUsage",
    "UsageRecord",
    "UsageSummary",
]
