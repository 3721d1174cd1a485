"""Transport layer between the gemwrap client and the Gemini API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import google.generativeai as genai
from pydantic import BaseModel, Field

from ..core.models import HarmProbability, SafetyRating

LOGGER = logging.getLogger(__name__)


class TransportResponse(BaseModel):
    """Raw outcome of one remote call, before the client validates it."""

    text: str = ""
    finish_reason: Optional[str] = None
    safety_ratings: List[SafetyRating] = Field(default_factory=list)


class GenerationTransport(Protocol):
    """Anything that can send one prompt to a text-generation model."""

    async def generate_content(
        self,
        *,
        model: str,
        prompt: str,
        max_output_tokens: int,
        temperature: float,
        top_p: float,
        stop_sequences: Optional[Sequence[str]],
    ) -> TransportResponse:
        ...


class GoogleGenAITransport:
    """Transport backed by the ``google-generativeai`` SDK.

    SDK exceptions propagate unchanged; they carry ``code`` and ``message``
    attributes that the error classifier understands.
    """

    def __init__(self, api_key: str, model: str, *, request_timeout: Optional[float] = None) -> None:
        genai.configure(api_key=api_key)
        self._model_name = model
        self._model = genai.GenerativeModel(model_name=model)
        self._request_timeout = request_timeout

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_model(self, model: str) -> Any:
        if model == self._model_name:
            return self._model
        return genai.GenerativeModel(model_name=model)

    async def generate_content(
        self,
        *,
        model: str,
        prompt: str,
        max_output_tokens: int,
        temperature: float,
        top_p: float,
        stop_sequences: Optional[Sequence[str]],
    ) -> TransportResponse:
        generation_config: Dict[str, Any] = {
            "max_output_tokens": max_output_tokens,
            "temperature": temperature,
            "top_p": top_p,
            "candidate_count": 1,
        }
        if stop_sequences:
            generation_config["stop_sequences"] = list(stop_sequences)

        options: Dict[str, Any] = {"generation_config": generation_config}
        if self._request_timeout:
            options["request_options"] = {"timeout": self._request_timeout}

        response = await self._get_model(model).generate_content_async(prompt, **options)
        return self._to_transport_response(response)

    @staticmethod
    def _to_transport_response(response: Any) -> TransportResponse:
        try:
            text = response.text or ""
        except ValueError:
            # Raised by the SDK when the candidate was blocked and carries no parts.
            text = ""

        candidates = getattr(response, "candidates", None) or []
        finish_reason: Optional[str] = None
        ratings: List[SafetyRating] = []
        if candidates:
            candidate = candidates[0]
            finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
            for rating in getattr(candidate, "safety_ratings", None) or []:
                probability = _enum_name(getattr(rating, "probability", None))
                if probability not in HarmProbability.__members__:
                    continue
                ratings.append(
                    SafetyRating(
                        category=_enum_name(getattr(rating, "category", None)) or "UNKNOWN",
                        probability=HarmProbability(probability),
                    )
                )
        elif not text:
            LOGGER.debug(
                "Gemini response carried no candidates",
                extra={"prompt_feedback": str(getattr(response, "prompt_feedback", None))},
            )

        return TransportResponse(text=text, finish_reason=finish_reason, safety_ratings=ratings)


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    name = getattr(value, "name", None)
    return str(name if name is not None else value)


__all__ = ["GenerationTransport", "GoogleGenAITransport", "TransportResponse"]
