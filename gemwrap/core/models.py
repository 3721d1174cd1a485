"""
gemwrap Core Data Models

Pydantic v2 models for requests, results, usage accounting, and configuration
of the gemwrap Gemini client.

Key Features:
- Immutable request/result values owned by a single call
- Usage records finalized exactly once per request
- Range-validated configuration that fails fast at construction
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


DEFAULT_MODEL = "gemini-2.0-flash-001"


class FinishReason(str, Enum):
    """Why the model stopped generating."""

    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FinishReason":
        """Map a transport-supplied reason onto the enum; missing means STOP."""
        if not value:
            return cls.STOP
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


class HarmProbability(str, Enum):
    """Probability bucket reported by the safety filter."""

    NEGLIGIBLE = "NEGLIGIBLE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SafetyRating(BaseModel):
    """A single safety category rating attached to a generation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category: str = Field(..., description="Harm category name", min_length=1)
    probability: HarmProbability = Field(..., description="Probability bucket")


class GenerationRequest(BaseModel):
    """
    Parameters for a single text generation.

    Immutable once constructed; unset options fall back to the client config.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt: str = Field(..., description="Raw prompt text; sanitized before sending")
    max_output_tokens: Optional[int] = Field(
        default=None,
        description="Upper bound on generated tokens",
        gt=0,
    )
    temperature: Optional[float] = Field(
        default=None,
        description="Sampling temperature",
        ge=0.0,
        le=2.0,
    )
    top_p: Optional[float] = Field(
        default=None,
        description="Nucleus sampling probability mass",
        ge=0.0,
        le=1.0,
    )
    stop_sequences: Optional[Tuple[str, ...]] = Field(
        default=None,
        description="Sequences that end generation",
    )


class TokenUsage(BaseModel):
    """Estimated token counts for one generation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    input: int = Field(..., ge=0)
    output: int = Field(..., ge=0)

    @computed_field
    @property
    def total(self) -> int:
        return self.input + self.output


class GenerationResult(BaseModel):
    """Successful generation returned by the client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    text: str = Field(..., description="Generated text", min_length=1)
    tokens: TokenUsage
    finish_reason: FinishReason = Field(default=FinishReason.STOP)
    safety_ratings: List[SafetyRating] = Field(default_factory=list)


class UsageRecord(BaseModel):
    """
    Accounting entry for one request (all retry attempts included).

    Created pending with :meth:`start` and finalized once with :meth:`finalize`,
    which returns a new record. Records are frozen.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    model: str
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    latency_ms: int = Field(default=0, ge=0)
    success: bool = False
    error: Optional[str] = None

    @classmethod
    def start(cls, *, model: str, input_tokens: int) -> "UsageRecord":
        return cls(model=model, input_tokens=input_tokens)

    def finalize(
        self,
        *,
        success: bool,
        latency_ms: float,
        output_tokens: int = 0,
        error: Optional[str] = None,
    ) -> "UsageRecord":
        return self.model_copy(
            update={
                "success": success,
                "latency_ms": max(0, int(round(latency_ms))),
                "output_tokens": output_tokens,
                "error": error,
            }
        )

    @computed_field
    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class UsageSummary(BaseModel):
    """Aggregate statistics over a batch of usage records."""

    model_config = ConfigDict(frozen=True)

    total_requests: int = 0
    success_rate: float = Field(default=0.0, description="Percentage of successful requests (0-100)")
    average_latency_ms: float = 0.0
    total_tokens: int = 0
    average_tokens_per_request: float = 0.0


# Configuration Models
class GeminiConfig(BaseModel):
    """Configuration for the Gemini client. Read-only once validated."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_key: str = Field(
        ...,
        description="Google Gemini API key",
        min_length=1,
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        description="Gemini model name",
        min_length=1,
    )
    max_tokens: int = Field(
        default=8192,
        description="Token ceiling shared by prompt and output",
        gt=0,
        le=50000,
    )
    timeout_ms: int = Field(
        default=10000,
        description="Per-attempt request timeout in milliseconds",
        gt=0,
        le=60000,
    )
    rate_limit_per_minute: int = Field(
        default=60,
        description="Requests per minute allowed by the account",
        gt=0,
        le=1000,
    )
    debug: bool = Field(
        default=False,
        description="Emit usage records and config diagnostics",
    )
    temperature: float = Field(
        default=0.7,
        description="Default sampling temperature",
        ge=0.0,
        le=2.0,
    )
    top_p: float = Field(
        default=0.8,
        description="Default nucleus sampling probability mass",
        ge=0.0,
        le=1.0,
    )

    @field_validator("api_key", "model")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("value must not be blank")
        return v.strip()

    @computed_field
    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class AppConfig(BaseModel):
    """Main application configuration."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
    )

    gemini: GeminiConfig = Field(
        ...,
        description="Gemini client configuration",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (None for console only)",
    )

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        return v.strip().upper()


__all__ = [
    "DEFAULT_MODEL",
    "FinishReason",
    "HarmProbability",
    "SafetyRating",
    "GenerationRequest",
    "TokenUsage",
    "GenerationResult",
    "UsageRecord",
    "UsageSummary",
    "GeminiConfig",
    "AppConfig",
]
