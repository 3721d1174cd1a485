"""
gemwrap - resilient text generation on top of Google Gemini.

Prompts are sanitized and fitted to a token budget, sent with a per-attempt
timeout and bounded retries, and every outcome is classified into a closed set
of error kinds with user-facing messages.
"""

__version__ = "0.1.0"
__author__ = "gemwrap Team"
__description__ = "Resilient Gemini text-generation client"

from .config import load_app_config
from .core import (
    ClientNotInitializedError,
    ConfigurationError,
    ErrorKind,
    GeminiConfig,
    GemwrapError,
    GenerationError,
    GenerationRequest,
    GenerationResult,
    UsageRecord,
    UsageSummary,
    classify_error,
    get_user_friendly_message,
    is_retryable,
)
from .llm import GeminiClient, RetryExecutor
from .optimization import calculate_cost, estimate_tokens, sanitize_text
from .usage import InMemoryUsageSink, UsageRecorder

__all__ = [
    "__version__",
    "GeminiClient",
    "GeminiConfig",
    "GenerationRequest",
    "GenerationResult",
    "RetryExecutor",
    "UsageRecord",
    "UsageSummary",
    "UsageRecorder",
    "InMemoryUsageSink",
    "ErrorKind",
    "GemwrapError",
    "GenerationError",
    "ConfigurationError",
    "ClientNotInitializedError",
    "classify_error",
    "is_retryable",
    "get_user_friendly_message",
    "calculate_cost",
    "estimate_tokens",
    "sanitize_text",
    "load_app_config",
]
