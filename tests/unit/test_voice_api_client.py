"""
Unit tests for VoiceApiClient (src/client/api.py).

Uses httpx.MockTransport to stand in for the server.
"""

import json

import httpx
import pytest

from src.client.api import VoiceApiClient
from src.session.exceptions import (
    ConfigurationError,
    InvalidArgument,
    NetworkError,
    UpstreamError,
)

BASE_URL = "http://voice.test"


def _api(handler):
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return VoiceApiClient(BASE_URL, http_client=http)


class TestStartSession:

    @pytest.mark.asyncio
    async def test_returns_room_name(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "roomName": "voice-adina-1"})

        api = _api(handler)
        assert await api.start_session("adina", participant_id="user-1", session_id="s-1") == "voice-adina-1"
        assert seen["path"] == "/api/voice/start"
        assert seen["body"] == {"persona": "adina", "participantId": "user-1", "sessionId": "s-1"}

    @pytest.mark.asyncio
    async def test_server_error_message_is_verbatim(self):
        api = _api(lambda request: httpx.Response(400, json={"success": False, "error": "Persona is required"}))
        with pytest.raises(InvalidArgument) as exc_info:
            await api.start_session("")
        assert exc_info.value.message == "Persona is required"

    @pytest.mark.asyncio
    async def test_missing_room_name(self):
        api = _api(lambda request: httpx.Response(200, json={"success": True}))
        with pytest.raises(UpstreamError):
            await api.start_session("adina")


class TestGetToken:

    @pytest.mark.asyncio
    async def test_returns_token_and_url(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"token": "jwt", "url": "wss://lk.test"})

        api = _api(handler)
        assert await api.get_token("voice-rafa-1", "user-1", persona="rafa") == ("jwt", "wss://lk.test")
        assert seen["params"] == {"roomName": "voice-rafa-1", "participantId": "user-1", "persona": "rafa"}

    @pytest.mark.asyncio
    async def test_configuration_error(self):
        api = _api(lambda request: httpx.Response(
            500, json={"success": False, "error": "LiveKit configuration incomplete: LIVEKIT_URL"},
        ))
        with pytest.raises(ConfigurationError) as exc_info:
            await api.get_token("voice-rafa-1", "user-1")
        assert exc_info.value.message == "LiveKit configuration incomplete: LIVEKIT_URL"

    @pytest.mark.asyncio
    async def test_incomplete_payload(self):
        api = _api(lambda request: httpx.Response(200, json={"token": "jwt"}))
        with pytest.raises(UpstreamError):
            await api.get_token("voice-rafa-1", "user-1")


class TestTransportAndStatus:

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        api = _api(handler)
        with pytest.raises(NetworkError) as exc_info:
            await api.end_session("voice-adina-1")
        assert "POST /api/voice/end" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        api = _api(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(UpstreamError) as exc_info:
            await api.test_connection()
        assert "Status: 502" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_end_session_posts_room_name(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        api = _api(handler)
        await api.end_session("voice-adina-1")
        assert seen["body"] == {"roomName": "voice-adina-1"}

    @pytest.mark.asyncio
    async def test_context_manager_keeps_injected_client_open(self):
        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={}),
        ))
        async with VoiceApiClient(BASE_URL, http_client=http):
            pass
        assert http.is_closed is False
        await http.aclose()


class TestClearMemory:

    @pytest.mark.asyncio
    async def test_posts_session_id(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "message": "Memory cleared for session: s-1",
                "memoriesCleared": 2,
            })

        result = await _api(handler).clear_memory("s-1")
        assert seen == {"path": "/api/voice/clear-memory", "body": {"sessionId": "s-1"}}
        assert result["memoriesCleared"] == 2

    @pytest.mark.asyncio
    async def test_missing_session_id(self):
        def handler(request):
            return httpx.Response(400, json={"success": False, "error": "Session ID is required"})

        with pytest.raises(InvalidArgument) as exc_info:
            await _api(handler).clear_memory("")
        assert exc_info.value.message == "Session ID is required"
