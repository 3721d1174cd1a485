"""Test doubles shared by the gemwrap test suite."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from gemwrap.llm import TransportResponse

Outcome = Union[TransportResponse, BaseException, Callable[[], Any]]


class FakeTransport:
    """In-memory transport that replays scripted outcomes in order.

    Each outcome is a response, an exception to raise, or a coroutine function
    awaited in place of the remote call. The last outcome repeats once the
    script runs out.
    """

    def __init__(self, outcomes: Optional[Sequence[Outcome]] = None) -> None:
        self._outcomes: List[Outcome] = list(
            outcomes or [TransportResponse(text="Generated text", finish_reason="STOP")]
        )
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(self, **kwargs: Any) -> TransportResponse:
        self.calls.append(kwargs)
        outcome = self._outcomes[min(len(self.calls), len(self._outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that only records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class StatusError(Exception):
    """Remote failure carrying an HTTP-like status code."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


async def never_returns() -> TransportResponse:
    await asyncio.sleep(3600)
    return TransportResponse(text="too late")
