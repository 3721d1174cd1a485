"""Gemini API client for gemwrap."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from ..config import describe_config, load_app_config
from ..core.exceptions import (
    ClientNotInitializedError,
    ConfigurationError,
    ErrorKind,
    GemwrapError,
    GenerationError,
)
from ..core.models import (
    FinishReason,
    GeminiConfig,
    GenerationRequest,
    GenerationResult,
    TokenUsage,
    UsageRecord,
)
from ..optimization import estimate_prompt_cost, estimate_tokens, fit_to_token_budget, sanitize_text
from ..usage import UsageRecorder
from .retry import RetryExecutor
from .transport import GenerationTransport, GoogleGenAITransport, TransportResponse

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
HEALTH_CHECK_PROMPT = "Hello"
HEALTH_CHECK_MAX_OUTPUT_TOKENS = 10

ChunkCallback = Callable[[str], Union[None, Awaitable[None]]]


class GeminiClient:
    """Resilient wrapper around a Gemini transport.

    Each request is sanitized, fitted to the token budget, dispatched with a
    per-attempt timeout and bounded retries, and accounted for in a usage
    record whether it succeeds or fails. The client holds only read-only
    state, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        config: GeminiConfig,
        *,
        transport: Optional[GenerationTransport] = None,
        retry_executor: Optional[RetryExecutor] = None,
        usage_recorder: Optional[UsageRecorder] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._initialized = False
        self._config = config
        if transport is None:
            try:
                transport = GoogleGenAITransport(
                    config.api_key,
                    config.model,
                    request_timeout=config.timeout_seconds,
                )
            except Exception as exc:  # pylint: disable=broad-except
                raise ConfigurationError(
                    "Failed to initialize Gemini transport",
                    config_key="GEMINI_API_KEY",
                    cause=exc,
                ) from exc
        self._transport = transport
        self._retry = retry_executor or RetryExecutor()
        self._usage = usage_recorder or UsageRecorder(enabled=config.debug)
        self._clock = clock
        self._initialized = True

        if config.debug:
            LOGGER.debug("Gemini client initialized", extra=describe_config(config))

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **kwargs) -> "GeminiClient":
        """Build a client from environment variables (and an optional ``.env`` file)."""
        return cls(load_app_config(env_file=env_file).gemini, **kwargs)

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.aclose()

    async def aclose(self) -> None:
        """Stop accepting requests. In-flight requests are not interrupted."""
        self._initialized = False

    @property
    def config(self) -> GeminiConfig:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._initialized

    def describe(self) -> dict:
        """Configuration summary without the API key."""
        return describe_config(self._config)

    async def generate(
        self,
        request: Union[GenerationRequest, str],
        **options,
    ) -> GenerationResult:
        """Generate text for ``request`` (a request object or a bare prompt plus options).

        Raises:
            ClientNotInitializedError: the client is not usable
            GenerationError: the request failed; ``kind`` tells why
        """
        if not self._initialized:
            raise ClientNotInitializedError()
        if isinstance(request, str):
            request = GenerationRequest(prompt=request, **options)
        elif options:
            request = GenerationRequest(**{**request.model_dump(), **options})

        prompt = sanitize_text(request.prompt)
        if not prompt:
            raise GenerationError(
                ErrorKind.INVALID_REQUEST,
                "Prompt cannot be empty",
                model=self._config.model,
            )

        budget = fit_to_token_budget(prompt, self._config.max_tokens)
        input_tokens = budget.estimated_tokens

        started_at = self._clock()
        usage = UsageRecord.start(model=self._config.model, input_tokens=input_tokens)

        try:
            response = await self._retry.execute(lambda: self._dispatch(budget.text, request))
        except Exception as exc:
            error = GenerationError.from_exception(exc, model=self._config.model)
            self._usage.record(
                usage.finalize(
                    success=False,
                    latency_ms=self._elapsed_ms(started_at),
                    error=error.message,
                )
            )
            if error is exc:
                raise
            raise error from exc

        output_tokens = estimate_tokens(response.text)
        self._usage.record(
            usage.finalize(
                success=True,
                latency_ms=self._elapsed_ms(started_at),
                output_tokens=output_tokens,
            )
        )
        return GenerationResult(
            text=response.text,
            tokens=TokenUsage(input=input_tokens, output=output_tokens),
            finish_reason=FinishReason.parse(response.finish_reason),
            safety_ratings=response.safety_ratings,
        )

    async def _dispatch(self, prompt: str, request: GenerationRequest) -> TransportResponse:
        temperature = request.temperature if request.temperature is not None else self._config.temperature
        top_p = request.top_p if request.top_p is not None else self._config.top_p
        call = self._transport.generate_content(
            model=self._config.model,
            prompt=prompt,
            max_output_tokens=request.max_output_tokens or self._config.max_tokens,
            temperature=temperature,
            top_p=top_p,
            stop_sequences=request.stop_sequences,
        )
        try:
            # wait_for cancels the transport call when the deadline passes.
            response = await asyncio.wait_for(call, timeout=self._config.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise GenerationError(
                ErrorKind.TIMEOUT,
                f"Request timed out after {self._config.timeout_ms}ms",
                cause=exc,
                model=self._config.model,
            ) from exc

        if not response.text:
            raise GenerationError(
                ErrorKind.CONTENT_FILTERED,
                "No text generated - content may have been filtered",
                model=self._config.model,
                context={"finish_reason": response.finish_reason},
            )
        return response

    async def generate_batch(
        self,
        requests: Sequence[Union[GenerationRequest, str]],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> List[GenerationResult]:
        """Generate every request, ``batch_size`` at a time.

        Groups run one after another and requests inside a group run
        concurrently. The first failure cancels the rest of its group and is
        raised; no partial results are returned.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        results: List[GenerationResult] = []
        for start in range(0, len(requests), batch_size):
            group = requests[start:start + batch_size]
            tasks = [asyncio.ensure_future(self.generate(request)) for request in group]
            try:
                results.extend(await asyncio.gather(*tasks))
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                LOGGER.error(
                    "Batch generation failed",
                    extra={"batch_number": start // batch_size + 1, "batch_size": len(group)},
                )
                raise
        return results

    async def generate_stream(
        self,
        request: Union[GenerationRequest, str],
        on_chunk: ChunkCallback,
    ) -> GenerationResult:
        """Streaming placeholder: generates normally and delivers the text as one chunk."""
        result = await self.generate(request)
        outcome = on_chunk(result.text)
        if asyncio.iscoroutine(outcome):
            await outcome
        return result

    async def health_check(self) -> bool:
        """Send a tiny test prompt; ``True`` when non-empty text comes back."""
        try:
            result = await self.generate(
                GenerationRequest(
                    prompt=HEALTH_CHECK_PROMPT,
                    max_output_tokens=HEALTH_CHECK_MAX_OUTPUT_TOKENS,
                )
            )
        except GemwrapError as exc:
            LOGGER.warning("Gemini health check failed", extra={"error": str(exc)})
            return False
        return len(result.text) > 0

    def estimate_request_cost(self, prompt: str, max_tokens: Optional[int] = None) -> float:
        """Estimate the USD cost of sending ``prompt``. No network call is made."""
        breakdown = estimate_prompt_cost(prompt, self._config.model, max_tokens or self._config.max_tokens)
        return breakdown.total_cost_usd

    def _elapsed_ms(self, started_at: float) -> float:
        return (self._clock() - started_at) * 1000


__all__ = ["GeminiClient", "DEFAULT_BATCH_SIZE"]
