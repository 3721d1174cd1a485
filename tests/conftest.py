from __future__ import annotations

from typing import Optional

import pytest

from gemwrap.core import GeminiConfig
from gemwrap.llm import GeminiClient, RetryExecutor
from gemwrap.usage import InMemoryUsageSink, UsageRecorder

from .helpers import FakeTransport, RecordingSleep


@pytest.fixture
def gemini_config() -> GeminiConfig:
    return GeminiConfig(api_key="test-key", timeout_ms=1000)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_executor(recording_sleep: RecordingSleep) -> RetryExecutor:
    return RetryExecutor(sleep=recording_sleep, random_source=lambda: 0.0)


@pytest.fixture
def usage_sink() -> InMemoryUsageSink:
    return InMemoryUsageSink()


@pytest.fixture
def make_client(gemini_config: GeminiConfig, retry_executor: RetryExecutor, usage_sink: InMemoryUsageSink):
    def _make(transport: FakeTransport, config: Optional[GeminiConfig] = None) -> GeminiClient:
        return GeminiClient(
            config or gemini_config,
            transport=transport,
            retry_executor=retry_executor,
            usage_recorder=UsageRecorder(usage_sink),
        )

    return _make
