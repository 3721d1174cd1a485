"""Bounded exponential-backoff retry for Gemini calls."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from ..core.exceptions import classify_error, is_retryable

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1000
DEFAULT_JITTER_RATIO = 0.3


def compute_backoff_ms(
    attempt: int,
    base_delay_ms: float,
    *,
    jitter_ratio: float = DEFAULT_JITTER_RATIO,
    random_value: float = 0.0,
) -> float:
    """Delay after failed attempt ``attempt`` (1-based): ``base * 2**(attempt-1)`` plus jitter.

    ``random_value`` is expected in ``[0, 1)`` and scales the jitter, which is
    at most ``jitter_ratio`` of the exponential delay.
    """
    if attempt < 1:
        raise ValueError("attempt numbers start at 1")
    delay = base_delay_ms * (2 ** (attempt - 1))
    return delay + delay * jitter_ratio * random_value


class RetryExecutor:
    """Run an async operation, retrying retryable failures with exponential backoff.

    Retry eligibility comes from :func:`gemwrap.core.exceptions.is_retryable`.
    ``sleep`` and ``random_source`` are injectable so tests can observe the
    schedule without waiting.
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
        jitter_ratio: float = DEFAULT_JITTER_RATIO,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms cannot be negative")
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._jitter_ratio = jitter_ratio
        self._sleep = sleep
        self._random = random_source

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def base_delay_ms(self) -> float:
        return self._base_delay_ms

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_attempts: Optional[int] = None,
        base_delay_ms: Optional[float] = None,
    ) -> T:
        """Await ``operation()`` until it succeeds, fails fatally, or attempts run out.

        Non-retryable errors propagate after the first attempt. When every
        attempt fails with a retryable error the last error is re-raised.
        """
        attempts = max_attempts if max_attempts is not None else self._max_attempts
        base = base_delay_ms if base_delay_ms is not None else self._base_delay_ms
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        async for attempt in AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(attempts),
            wait=self._make_wait(base),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._log_retry(attempts),
            reraise=True,
        ):
            with attempt:
                # ``operation`` may be a plain callable returning an awaitable.
                return await operation()
        raise AssertionError("unreachable: tenacity either returns or re-raises")

    def _make_wait(self, base_delay_ms: float) -> Callable[[RetryCallState], float]:
        def _wait(retry_state: RetryCallState) -> float:
            delay_ms = compute_backoff_ms(
                retry_state.attempt_number,
                base_delay_ms,
                jitter_ratio=self._jitter_ratio,
                random_value=self._random(),
            )
            return delay_ms / 1000

        return _wait

    @staticmethod
    def _log_retry(max_attempts: int) -> Callable[[RetryCallState], None]:
        def _before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            next_sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
            LOGGER.warning(
                "Operation failed, retrying",
                extra={
                    "attempt": retry_state.attempt_number,
                    "max_attempts": max_attempts,
                    "error_kind": classify_error(error).value,
                    "error": str(error),
                    "next_attempt_in_ms": round(next_sleep * 1000),
                },
            )

        return _before_sleep


__all__ = [
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_JITTER_RATIO",
    "DEFAULT_MAX_ATTEMPTS",
    "RetryExecutor",
    "compute_backoff_ms",
]
