"""
Unit tests for OpenAICompatibleClient (src/llm/openai_client.py).

Uses httpx.MockTransport instead of a live provider.
"""

import json

import httpx
import pytest

from src.llm.openai_client import OpenAICompatibleClient
from src.session.exceptions import ConfigurationError, UpstreamError


def _client(handler):
    return OpenAICompatibleClient(
        api_key="sk-test",
        endpoint="https://llm.test/v1/",
        model="gpt-test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestOpenAICompatibleClient:

    def test_missing_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            OpenAICompatibleClient(api_key=None, endpoint="https://llm.test/v1", model="m")
        assert exc_info.value.missing == ["OPENAI_API_KEY"]

    @pytest.mark.asyncio
    async def test_chat_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "Shalom"}, "finish_reason": "stop"}],
            })

        client = _client(handler)
        reply = await client.chat([{"role": "user", "content": "Hi"}], temperature=0.5)

        assert reply == "Shalom"
        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "gpt-test"
        assert seen["body"]["temperature"] == 0.5
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_content(self):
        client = _client(lambda request: httpx.Response(200, json={
            "choices": [{"message": {"content": None}, "finish_reason": "length"}],
        }))
        assert await client.chat([{"role": "user", "content": "Hi"}]) == ""

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = _client(lambda request: httpx.Response(429, text="rate limited"))
        with pytest.raises(UpstreamError) as exc_info:
            await client.chat([{"role": "user", "content": "Hi"}])
        assert "429" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = _client(handler)
        with pytest.raises(UpstreamError):
            await client.chat([{"role": "user", "content": "Hi"}])

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        client = _client(lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(UpstreamError) as exc_info:
            await client.chat([{"role": "user", "content": "Hi"}])
        assert exc_info.value.message == "LLM returned a malformed response"
