"""Gemini integration for gemwrap."""

from .gemini_client import DEFAULT_BATCH_SIZE, GeminiClient
from .retry import RetryExecutor, compute_backoff_ms
from .transport import GenerationTransport, GoogleGenAITransport, TransportResponse

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "GeminiClient",
    "RetryExecutor",
    "compute_backoff_ms",
    "GenerationTransport",
    "GoogleGenAITransport",
    "TransportResponse",
]
