"""Tests for the OpenAI-compatible image adapter."""

import json

import httpx
import pytest

from src.domain.ports.config import ImageConfig, LLMConfig
from src.domain.ports.llm import LLMConfigError, LLMRequestError
from src.infrastructure.llm.openai_images import OpenAIImageAdapter


def _adapter(handler, **image) -> OpenAIImageAdapter:
    adapter = OpenAIImageAdapter(ImageConfig(**image), LLMConfig(base_url="https://llm.test/v1/", api_key="k"))
    adapter._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return adapter


@pytest.mark.asyncio
async def test_posts_generation_request():
    seen = {}

    def respond(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"b64_json": "aGVsbG8="}]})

    url = await _adapter(respond).generate("a red fox", "dall-e-3", size="1024x1024", quality="hd")

    assert url == "data:image/png;base64,aGVsbG8="
    assert seen["url"] == "https://llm.test/v1/images/generations"
    assert seen["body"] == {
        "prompt": "a red fox",
        "model": "dall-e-3",
        "n": 1,
        "size": "1024x1024",
        "quality": "hd",
        "response_format": "b64_json",
    }


@pytest.mark.asyncio
async def test_own_base_url_and_url_results():
    seen = {}

    def respond(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"data": [{"url": "https://cdn.test/1.png"}]})

    url = await _adapter(respond, base_url="https://images.test/v1").generate("fox", "m")
    assert url == "https://cdn.test/1.png"
    assert seen["url"] == "https://images.test/v1/images/generations"


def test_timeout_defaults_to_two_minutes():
    adapter = OpenAIImageAdapter(ImageConfig(), LLMConfig(api_key="k"))
    assert adapter._get_client().timeout.read == 120


@pytest.mark.asyncio
async def test_missing_key_raises_config_error():
    adapter = OpenAIImageAdapter(ImageConfig(), LLMConfig(api_key=""))
    with pytest.raises(LLMConfigError):
        await adapter.generate("fox", "m")


@pytest.mark.asyncio
async def test_http_error_carries_status():
    adapter = _adapter(lambda request: httpx.Response(400, text="bad prompt"))
    with pytest.raises(LLMRequestError, match="400") as exc:
        await adapter.generate("fox", "m")
    assert exc.value.status == 400


@pytest.mark.asyncio
async def test_empty_result_is_request_error():
    adapter = _adapter(lambda request: httpx.Response(200, json={"data": []}))
    with pytest.raises(LLMRequestError, match="No image data"):
        await adapter.generate("fox", "m")


@pytest.mark.asyncio
async def test_non_json_body_is_request_error():
    adapter = _adapter(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(LLMRequestError, match="invalid JSON"):
        await adapter.generate("fox", "m")
