"""Tests for the Gemini and OpenAI adapters against stubbed SDK clients."""

from __future__ import annotations

import base64
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors
from openai import APIStatusError

from manuscript_providers import GenerationError, ProviderConfig, ProviderRequest, ProviderResponseError
from manuscript_providers.gemini import DEFAULT_IMAGE_MODEL as DEFAULT_GEMINI_IMAGE_MODEL
from manuscript_providers.gemini import GeminiProvider
from manuscript_providers.openai import OpenAIProvider

from services.generation.app.classifier import is_fatal


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _raising(exc: Exception):
    async def call(**kwargs):
        raise exc

    return call


async def test_gemini_api_error_becomes_fatal_generation_error() -> None:
    provider = GeminiProvider(ProviderConfig(name="gemini", api_key="test", model="gemini-2.5-flash"))
    error = genai_errors.ClientError(
        403,
        {"error": {"code": 403, "message": "Your API key was reported as leaked.", "status": "PERMISSION_DENIED"}},
    )
    provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=_raising(error))))

    with pytest.raises(GenerationError) as excinfo:
        await provider.generate(ProviderRequest(prompt="Write chapter one"))

    assert excinfo.value.status_code == 403
    assert excinfo.value.reason == "PERMISSION_DENIED"
    assert is_fatal(excinfo.value)


async def test_gemini_server_error_is_transient() -> None:
    provider = GeminiProvider(ProviderConfig(name="gemini", api_key="test", model="gemini-2.5-flash"))
    error = genai_errors.ServerError(
        503, {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}
    )
    provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=_raising(error))))

    with pytest.raises(GenerationError) as excinfo:
        await provider.generate(ProviderRequest(prompt="Write chapter one"))

    assert excinfo.value.status_code == 503
    assert not is_fatal(excinfo.value)


async def test_openai_status_error_carries_status_code() -> None:
    provider = OpenAIProvider(ProviderConfig(name="openai", api_key="test", model="gpt-4.1"))
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(401, request=request, json={"error": {"message": "Incorrect API key provided"}})
    error = APIStatusError("Incorrect API key provided", response=response, body=None)
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_raising(error))))

    with pytest.raises(GenerationError) as excinfo:
        await provider.generate(ProviderRequest(prompt="Write chapter one"))

    assert excinfo.value.status_code == 401
    assert is_fatal(excinfo.value)


def _recording(result, calls: list):
    async def call(**kwargs):
        calls.append(kwargs)
        return result

    return call


def _gemini(generate_content) -> GeminiProvider:
    provider = GeminiProvider(ProviderConfig(name="gemini", api_key="test", model="gemini-2.5-flash"))
    provider._client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return provider


def _inline_result(data: bytes, mime_type: str) -> SimpleNamespace:
    blob = SimpleNamespace(data=data, mime_type=mime_type)
    part = SimpleNamespace(inline_data=blob, text=None)
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))],
        prompt_feedback=None,
    )


async def test_gemini_image_returns_inline_blob_with_aspect_ratio() -> None:
    calls: list = []
    provider = _gemini(_recording(_inline_result(b"png-bytes", "image/png"), calls))

    media = await provider.generate_image("A cover", aspect_ratio="3:4")

    assert media.data == b"png-bytes"
    assert media.mime_type == "image/png"
    assert media.model == DEFAULT_GEMINI_IMAGE_MODEL
    assert calls[0]["config"].image_config.aspect_ratio == "3:4"


async def test_gemini_blocked_image_is_a_response_error() -> None:
    blocked = SimpleNamespace(candidates=[], prompt_feedback=SimpleNamespace(block_reason="SAFETY"))
    provider = _gemini(_recording(blocked, []))

    with pytest.raises(ProviderResponseError, match="blocked"):
        await provider.generate_image("A cover")


async def test_gemini_speech_sends_prebuilt_voice() -> None:
    calls: list = []
    provider = _gemini(_recording(_inline_result(b"\x00\x01", "audio/L16;codec=pcm;rate=24000"), calls))

    media = await provider.synthesize_speech("Once upon a time", voice="Puck")

    assert media.data == b"\x00\x01"
    config = calls[0]["config"]
    assert config.response_modalities == ["AUDIO"]
    assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Puck"


async def test_gemini_speech_api_error_becomes_generation_error() -> None:
    error = genai_errors.ServerError(
        500, {"error": {"code": 500, "message": "Internal error", "status": "INTERNAL"}}
    )
    provider = _gemini(_raising(error))

    with pytest.raises(GenerationError) as excinfo:
        await provider.synthesize_speech("Once upon a time", voice="Kore")

    assert excinfo.value.status_code == 500


async def test_openai_image_decodes_base64_and_maps_size() -> None:
    calls: list = []
    result = SimpleNamespace(data=[SimpleNamespace(b64_json=base64.b64encode(b"png-bytes").decode("ascii"))])
    provider = OpenAIProvider(ProviderConfig(name="openai", api_key="test", model="gpt-4.1"))
    provider._client = SimpleNamespace(images=SimpleNamespace(generate=_recording(result, calls)))

    media = await provider.generate_image("A cover", aspect_ratio="16:9")

    assert media.data == b"png-bytes"
    assert calls[0]["size"] == "1536x1024"


@pytest.mark.parametrize(
    ("requested", "sent"),
    [("Nova", "nova"), ("Kore", "alloy")],
    ids=["known-voice", "foreign-voice"],
)
async def test_openai_speech_voice_mapping(requested: str, sent: str) -> None:
    calls: list = []
    provider = OpenAIProvider(ProviderConfig(name="openai", api_key="test", model="gpt-4.1"))
    provider._client = SimpleNamespace(
        audio=SimpleNamespace(speech=SimpleNamespace(create=_recording(SimpleNamespace(content=b"pcm"), calls)))
    )

    media = await provider.synthesize_speech("Once upon a time", voice=requested)

    assert media.data == b"pcm"
    assert calls[0]["voice"] == sent
    assert calls[0]["response_format"] == "pcm"
