from __future__ import annotations

from types import SimpleNamespace

import pytest

from gemwrap.core import HarmProbability
from gemwrap.llm import GoogleGenAITransport


@pytest.fixture
def genai(mocker):
    return mocker.patch("gemwrap.llm.transport.genai")


def _response(text="Hello", finish_reason="STOP", ratings=None):
    candidate = SimpleNamespace(
        finish_reason=SimpleNamespace(name=finish_reason),
        safety_ratings=ratings or [],
    )
    return SimpleNamespace(text=text, candidates=[candidate], prompt_feedback=None)


class _BlockedResponse:
    candidates = [SimpleNamespace(finish_reason=SimpleNamespace(name="SAFETY"), safety_ratings=[])]
    prompt_feedback = None

    @property
    def text(self):
        raise ValueError("response has no parts")


def test_model_is_built_once_at_construction(genai) -> None:
    transport = GoogleGenAITransport("key", "gemini-2.0-flash-001")

    genai.configure.assert_called_once_with(api_key="key")
    genai.GenerativeModel.assert_called_once_with(model_name="gemini-2.0-flash-001")
    assert transport.model_name == "gemini-2.0-flash-001"


@pytest.mark.asyncio
async def test_generate_content_passes_config_and_timeout(genai, mocker) -> None:
    model = genai.GenerativeModel.return_value
    model.generate_content_async = mocker.AsyncMock(return_value=_response())
    transport = GoogleGenAITransport("key", "gemini-2.0-flash-001", request_timeout=2.5)

    response = await transport.generate_content(
        model="gemini-2.0-flash-001",
        prompt="Hi",
        max_output_tokens=64,
        temperature=0.5,
        top_p=0.9,
        stop_sequences=["END"],
    )

    assert response.text == "Hello"
    assert response.finish_reason == "STOP"
    model.generate_content_async.assert_awaited_once_with(
        "Hi",
        generation_config={
            "max_output_tokens": 64,
            "temperature": 0.5,
            "top_p": 0.9,
            "candidate_count": 1,
            "stop_sequences": ["END"],
        },
        request_options={"timeout": 2.5},
    )
    genai.GenerativeModel.assert_called_once()


@pytest.mark.asyncio
async def test_generate_content_without_timeout_omits_request_options(genai, mocker) -> None:
    model = genai.GenerativeModel.return_value
    model.generate_content_async = mocker.AsyncMock(return_value=_response())
    transport = GoogleGenAITransport("key", "gemini-2.0-flash-001")

    await transport.generate_content(
        model="gemini-2.0-flash-001",
        prompt="Hi",
        max_output_tokens=64,
        temperature=0.5,
        top_p=0.9,
        stop_sequences=None,
    )

    _, kwargs = model.generate_content_async.call_args
    assert "request_options" not in kwargs
    assert "stop_sequences" not in kwargs["generation_config"]


def test_blocked_candidate_maps_to_empty_text() -> None:
    response = GoogleGenAITransport._to_transport_response(_BlockedResponse())

    assert response.text == ""
    assert response.finish_reason == "SAFETY"


def test_safety_ratings_are_mapped_and_unknown_probabilities_skipped() -> None:
    ratings = [
        SimpleNamespace(category=SimpleNamespace(name="HARM_CATEGORY_HARASSMENT"), probability=SimpleNamespace(name="LOW")),
        SimpleNamespace(category=SimpleNamespace(name="HARM_CATEGORY_HATE_SPEECH"), probability=SimpleNamespace(name="BOGUS")),
    ]

    response = GoogleGenAITransport._to_transport_response(_response(ratings=ratings))

    [rating] = response.safety_ratings
    assert rating.category == "HARM_CATEGORY_HARASSMENT"
    assert rating.probability is HarmProbability.LOW
