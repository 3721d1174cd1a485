"""Usage accounting for gemwrap."""

from .recorder import InMemoryUsageSink, UsageRecorder, UsageSink, aggregate_usage

__all__ = ["InMemoryUsageSink", "UsageRecorder", "UsageSink", "aggregate_usage"]
