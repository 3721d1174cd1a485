"""
gemwrap Custom Exceptions

This module defines the exception hierarchy and the error classifier used by the
gemwrap Gemini client. Every failure that leaves the client is expressed as a
single error value carrying a closed error kind, so callers can branch on
``error.kind`` instead of on a tree of subclasses.

Key Features:
- Closed ``ErrorKind`` taxonomy with a fixed retryability table
- User-facing messages derived from the kind, never from transport internals
- Pure, total classification of arbitrary exceptions (status code, then message)
- Context tracking and serialization for logging

Exception Categories:
- GenerationError: anything that went wrong while producing text
- ConfigurationError: invalid or missing configuration (fatal at construction)
- ClientNotInitializedError: the client was used before or after its lifetime
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


class ErrorKind(str, Enum):
    """Closed set of failure categories for Gemini requests."""

    API_KEY_INVALID = "API_KEY_INVALID"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    CONTENT_FILTERED = "CONTENT_FILTERED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TOKEN_LIMIT_EXCEEDED = "TOKEN_LIMIT_EXCEEDED"
    INVALID_REQUEST = "INVALID_REQUEST"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


# Quota exhaustion is terminal for the current run.
RETRYABLE_KINDS: Dict[ErrorKind, bool] = {
    ErrorKind.API_KEY_INVALID: False,
    ErrorKind.QUOTA_EXCEEDED: False,
    ErrorKind.RATE_LIMIT_EXCEEDED: True,
    ErrorKind.TIMEOUT: True,
    ErrorKind.CONTENT_FILTERED: False,
    ErrorKind.NETWORK_ERROR: True,
    ErrorKind.TOKEN_LIMIT_EXCEEDED: False,
    ErrorKind.INVALID_REQUEST: False,
    ErrorKind.SERVICE_UNAVAILABLE: True,
    ErrorKind.UNKNOWN: False,
}

USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.API_KEY_INVALID: "The API key is invalid. Please check your configuration.",
    ErrorKind.QUOTA_EXCEEDED: "The API usage quota has been exceeded. Please try again later.",
    ErrorKind.RATE_LIMIT_EXCEEDED: "Too many requests. Please wait a moment and try again.",
    ErrorKind.TIMEOUT: "The request timed out. Please try again.",
    ErrorKind.CONTENT_FILTERED: "The content was filtered. Please try different input.",
    ErrorKind.NETWORK_ERROR: "Unable to reach the AI service. Please check your connection.",
    ErrorKind.TOKEN_LIMIT_EXCEEDED: "The text is too long. Please shorten it and try again.",
    ErrorKind.INVALID_REQUEST: "The request was invalid. Please adjust it and try again.",
    ErrorKind.SERVICE_UNAVAILABLE: "The AI service is temporarily unavailable. Please try again later.",
    ErrorKind.UNKNOWN: "Something went wrong while processing the request. Please try again.",
}


class GemwrapError(Exception):
    """
    Base exception class for all gemwrap errors.

    Provides common functionality for error tracking, context preservation,
    and debugging information across the package.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        retryable: bool = False,
        user_message: Optional[str] = None,
    ) -> None:
        """
        Initialize a gemwrap error.

        Args:
            message: Technical error message for developers
            error_code: Unique error code for categorization
            context: Additional context information
            cause: The underlying exception that caused this error
            retryable: Whether this error might succeed on retry
            user_message: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.cause = cause
        self.retryable = retryable
        self.user_message = user_message or message
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "context": self.context,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        """String representation with context."""
        base_msg = f"{self.error_code}: {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        if self.cause:
            base_msg += f" (Caused by: {self.cause})"
        return base_msg


class GenerationError(GemwrapError):
    """
    Error raised for any failed text generation.

    ``retryable`` and ``user_message`` are looked up from ``kind``; they cannot
    be passed in.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        """
        Initialize a generation error.

        Args:
            kind: Classified error kind
            message: Technical error message
            cause: Original exception raised by the transport, if any
            model: Gemini model that was being called
            status_code: HTTP-like status code reported by the transport
            **kwargs: Additional arguments passed to GemwrapError
        """
        context = kwargs.pop("context", {})
        context.update({
            "kind": kind.value,
            "model": model,
            "status_code": status_code,
        })
        kwargs.pop("retryable", None)
        kwargs.pop("user_message", None)

        super().__init__(
            message,
            error_code=kind.value,
            context=context,
            cause=cause,
            retryable=RETRYABLE_KINDS[kind],
            user_message=USER_MESSAGES[kind],
            **kwargs,
        )
        self.kind = kind
        self.model = model
        self.status_code = status_code

    @classmethod
    def from_exception(cls, error: BaseException, *, model: Optional[str] = None) -> "GenerationError":
        """Classify an arbitrary exception and wrap it, keeping it as the cause."""
        if isinstance(error, GenerationError):
            return error
        return cls(
            classify_error(error),
            f"API call failed: {_safe_message(error) or error.__class__.__name__}",
            cause=error,
            model=model,
            status_code=_extract_status(error),
        )


class ConfigurationError(GemwrapError):
    """
    Configuration errors.

    Handles missing API keys, invalid configuration values,
    and environment setup issues. Always fatal.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
        expected_type: Optional[str] = None,
        provided_value: Any = None,
        **kwargs,
    ) -> None:
        """
        Initialize a configuration error.

        Args:
            message: Error message
            config_key: Configuration key that's problematic
            config_file: Configuration file path
            expected_type: Expected value type
            provided_value: Actually provided value
            **kwargs: Additional arguments passed to GemwrapError
        """
        context = kwargs.pop("context", {})
        context.update({
            "config_key": config_key,
            "config_file": config_file,
            "expected_type": expected_type,
            "provided_value": str(provided_value) if provided_value is not None else None,
        })

        kwargs["retryable"] = False

        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key
        self.config_file = config_file
        self.expected_type = expected_type
        self.provided_value = provided_value


class ClientNotInitializedError(GemwrapError):
    """Raised when a request is made on a client that is not ready to send it."""

    def __init__(self, message: str = "Client not initialized", **kwargs) -> None:
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)


# Classification
_STATUS_ATTRIBUTES = ("status_code", "status", "code", "http_status")


def _safe_getattr(obj: Any, attr: str) -> Any:
    # Third-party errors sometimes expose attributes as raising properties.
    try:
        return getattr(obj, attr, None)
    except Exception:  # pylint: disable=broad-except
        return None


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _extract_status(error: BaseException) -> Optional[int]:
    for attr in _STATUS_ATTRIBUTES:
        status = _as_status(_safe_getattr(error, attr))
        if status is not None:
            return status
    return _as_status(_safe_getattr(_safe_getattr(error, "response"), "status_code"))


def _safe_message(error: Any) -> str:
    message = _safe_getattr(error, "message")
    if isinstance(message, str) and message:
        return message
    try:
        return str(error)
    except Exception:  # pylint: disable=broad-except
        return ""


def _classify_status(status: int, message: str) -> Optional[ErrorKind]:
    if status in (401, 403):
        return ErrorKind.API_KEY_INVALID
    if status == 429:
        return ErrorKind.QUOTA_EXCEEDED if "quota" in message else ErrorKind.RATE_LIMIT_EXCEEDED
    if status == 400:
        return ErrorKind.API_KEY_INVALID if "api key" in message else ErrorKind.INVALID_REQUEST
    if status == 408:
        return ErrorKind.TIMEOUT
    if status >= 500:
        return ErrorKind.SERVICE_UNAVAILABLE
    return None


def _classify_message(message: str) -> Optional[ErrorKind]:
    if not message:
        return None
    if "unauthorized" in message or "api key" in message or "permission denied" in message:
        return ErrorKind.API_KEY_INVALID
    # "quota" must win over the generic rate-limit wording.
    if "quota" in message:
        return ErrorKind.QUOTA_EXCEEDED
    if "rate limit" in message or "too many requests" in message:
        return ErrorKind.RATE_LIMIT_EXCEEDED
    if "invalid" in message:
        return ErrorKind.INVALID_REQUEST
    if "service unavailable" in message or "internal server" in message or "overloaded" in message:
        return ErrorKind.SERVICE_UNAVAILABLE
    # "timeout" must win over the generic network wording.
    if "timeout" in message or "timed out" in message or "deadline exceeded" in message:
        return ErrorKind.TIMEOUT
    if ("content" in message and "filter" in message) or "blocked" in message:
        return ErrorKind.CONTENT_FILTERED
    if "network" in message or "connection" in message:
        return ErrorKind.NETWORK_ERROR
    if "token" in message and "limit" in message:
        return ErrorKind.TOKEN_LIMIT_EXCEEDED
    return None


def classify_error(error: Any) -> ErrorKind:
    """
    Map an arbitrary failure onto an :class:`ErrorKind`.

    Status-code rules are evaluated before message rules and the first match
    wins. The function is pure and never raises.

    Args:
        error: Exception (or any object) to classify

    Returns:
        The matching error kind, ``ErrorKind.UNKNOWN`` when nothing matches
    """
    if error is None:
        return ErrorKind.UNKNOWN
    if isinstance(error, GenerationError):
        return error.kind
    message = _safe_message(error).lower()
    if not isinstance(error, BaseException):
        return _classify_message(message) or ErrorKind.UNKNOWN

    status = _extract_status(error)
    if status is not None:
        kind = _classify_status(status, message)
        if kind is not None:
            return kind

    kind = _classify_message(message)
    if kind is not None:
        return kind

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.UNKNOWN


def is_retryable(error: Union[ErrorKind, BaseException, Any]) -> bool:
    """
    Decide whether a failure might succeed on retry.

    Args:
        error: An :class:`ErrorKind` or an exception to classify first

    Returns:
        The retryability recorded for the kind in ``RETRYABLE_KINDS``
    """
    kind = error if isinstance(error, ErrorKind) else classify_error(error)
    return RETRYABLE_KINDS[kind]


def get_user_friendly_message(error: Union[ErrorKind, BaseException, Any]) -> str:
    """
    Get a user-friendly error message.

    Args:
        error: An :class:`ErrorKind` or an exception

    Returns:
        Message from the fixed per-kind table
    """
    if isinstance(error, ConfigurationError):
        return error.user_message
    kind = error if isinstance(error, ErrorKind) else classify_error(error)
    return USER_MESSAGES[kind]


__all__ = [
    "ErrorKind",
    "RETRYABLE_KINDS",
    "USER_MESSAGES",
    "GemwrapError",
    "GenerationError",
    "ConfigurationError",
    "ClientNotInitializedError",
    "classify_error",
    "is_retryable",
    "get_user_friendly_message",
]
