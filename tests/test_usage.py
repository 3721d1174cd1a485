from __future__ import annotations

import logging

import pytest

from gemwrap.core import UsageRecord
from gemwrap.usage import InMemoryUsageSink, UsageRecorder, aggregate_usage


def _record(success: bool, latency_ms: float, input_tokens: int = 10, output_tokens: int = 5) -> UsageRecord:
    return UsageRecord.start(model="gemini-2.0-flash-001", input_tokens=input_tokens).finalize(
        success=success,
        latency_ms=latency_ms,
        output_tokens=output_tokens if success else 0,
        error=None if success else "API call failed: boom",
    )


def test_aggregate_empty_is_all_zeros() -> None:
    summary = aggregate_usage([])

    assert summary.total_requests == 0
    assert summary.success_rate == 0
    assert summary.average_latency_ms == 0
    assert summary.total_tokens == 0
    assert summary.average_tokens_per_request == 0


def test_aggregate_statistics() -> None:
    records = [_record(True, 100), _record(True, 300), _record(False, 200), _record(True, 400)]

    summary = UsageRecorder.aggregate(records)

    assert summary.total_requests == 4
    assert summary.success_rate == pytest.approx(75.0)
    assert summary.average_latency_ms == pytest.approx(250.0)
    assert summary.total_tokens == 15 * 3 + 10
    assert summary.average_tokens_per_request == pytest.approx(55 / 4)


def test_finalize_returns_new_record() -> None:
    pending = UsageRecord.start(model="m", input_tokens=3)
    done = pending.finalize(success=True, latency_ms=12.6, output_tokens=4)

    assert pending.success is False
    assert done.success is True
    assert done.latency_ms == 13
    assert done.total_tokens == 7
    assert done.timestamp == pending.timestamp


def test_disabled_recorder_drops_records() -> None:
    sink = InMemoryUsageSink()
    UsageRecorder(sink, enabled=False).record(_record(True, 10))

    assert sink.records == []


def test_enabled_recorder_logs_and_forwards(caplog) -> None:
    sink = InMemoryUsageSink()
    record = _record(False, 50)

    with caplog.at_level(logging.INFO, logger="gemwrap.usage"):
        UsageRecorder(sink).record(record)

    assert sink.records == [record]
    [log] = [entry for entry in caplog.records if entry.name == "gemwrap.usage"]
    assert log.success is False
    assert log.latency_ms == 50
    assert sink.summary().total_requests == 1
    sink.clear()
    assert sink.records == []


def test_sink_failure_never_reaches_caller(caplog) -> None:
    def broken_sink(record: UsageRecord) -> None:
        raise RuntimeError("disk full")

    with caplog.at_level(logging.WARNING, logger="gemwrap.usage"):
        UsageRecorder(broken_sink).record(_record(True, 10))

    assert any("Usage sink failed" in entry.getMessage() for entry in caplog.records)
