"""Usage accounting for Gemini requests."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from ..core.models import UsageRecord, UsageSummary
from ..utils.logger import USAGE_LOGGER

LOGGER = logging.getLogger(USAGE_LOGGER)

UsageSink = Callable[[UsageRecord], None]


class InMemoryUsageSink:
    """Sink that keeps every record it receives, in arrival order."""

    def __init__(self) -> None:
        self._records: List[UsageRecord] = []

    def __call__(self, record: UsageRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> List[UsageRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def summary(self) -> UsageSummary:
        return aggregate_usage(self._records)


def aggregate_usage(records: Iterable[UsageRecord]) -> UsageSummary:
    """Summarise ``records``; every figure is zero when there are none."""

    records = list(records)
    if not records:
        return UsageSummary()

    total = len(records)
    successes = sum(1 for record in records if record.success)
    total_tokens = sum(record.input_tokens + record.output_tokens for record in records)
    total_latency = sum(record.latency_ms for record in records)

    return UsageSummary(
        total_requests=total,
        success_rate=(successes / total) * 100,
        average_latency_ms=total_latency / total,
        total_tokens=total_tokens,
        average_tokens_per_request=total_tokens / total,
    )


class UsageRecorder:
    """Hand finalized usage records to the log and an optional sink.

    Disabled recorders drop records. Recording never raises into the request
    path: sink failures are logged and discarded.
    """

    def __init__(self, sink: Optional[UsageSink] = None, *, enabled: bool = True) -> None:
        self._sink = sink
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record(self, record: UsageRecord) -> None:
        if not self._enabled:
            return

        LOGGER.info(
            "Gemini API usage",
            extra={
                "timestamp": record.timestamp.isoformat(),
                "model": record.model,
                "input_tokens": record.input_tokens,
                "output_tokens": record.output_tokens,
                "total_tokens": record.total_tokens,
                "latency_ms": record.latency_ms,
                "success": record.success,
                "error": record.error,
            },
        )

        if self._sink is None:
            return
        try:
            self._sink(record)
        except Exception:  # pylint: disable=broad-except
            LOGGER.warning("Usage sink failed; record dropped", exc_info=True)

    @staticmethod
    def aggregate(records: Iterable[UsageRecord]) -> UsageSummary:
        return aggregate_usage(records)


__all__ = ["InMemoryUsageSink", "UsageRecorder", "UsageSink", "aggregate_usage"]
