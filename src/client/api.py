"""
HTTP client for the voice session API.

Server errors are surfaced verbatim: the ``error`` field of a failed
response becomes the exception message.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from src.session.exceptions import (
    ConfigurationError,
    InvalidArgument,
    NetworkError,
    UpstreamError,
    VoiceSessionError,
)

logger = structlog.get_logger("client")

DEFAULT_TIMEOUT = 15.0


def _error_for_status(status_code: int, message: str) -> VoiceSessionError:
    if status_code == 400:
        return InvalidArgument(message)
    if status_code == 500:
        return ConfigurationError(message)
    return UpstreamError(message)


class VoiceApiClient:
    """
    Async client for /api/voice/*.

    Usage:
        async with VoiceApiClient("http://localhost:4000") as api:
            room_name = await api.start_session("adina", participant_id="user-1")
            token, url = await api.get_token(room_name, "user-1")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def __aenter__(self) -> "VoiceApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and not self._http.is_closed:
            await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        context = f"{method} {path}"
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("api_request_failed", request=context, error=str(e), error_type=type(e).__name__)
            raise NetworkError(f"Failed to {context}: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            message = data.get("error") or data.get("message") or f"Failed to {context} (Status: {response.status_code})"
            logger.error("api_error", request=context, status=response.status_code, message=message)
            raise _error_for_status(response.status_code, message)

        return data

    async def start_session(
        self,
        persona: str,
        participant_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> str:
        """POST /api/voice/start. Returns the room name."""
        body = {"persona": persona}
        if participant_id:
            body["participantId"] = participant_id
        if session_id:
            body["sessionId"] = session_id
        data = await self._request("POST", "/api/voice/start", json=body)
        room_name = data.get("roomName")
        if not room_name:
            raise UpstreamError("Server did not return a room name")
        return room_name

    async def get_token(self, room_name: str, participant_id: str, persona: Optional[str] = None):
        """GET /api/voice/token. Returns (token, server_url)."""
        params = {"roomName": room_name, "participantId": participant_id}
        if persona:
            params["persona"] = persona
        data = await self._request("GET", "/api/voice/token", params=params)
        token, url = data.get("token"), data.get("url")
        if not token or not url:
            raise UpstreamError("Server did not return a token and URL")
        return token, url

    async def end_session(self, room_name: str) -> None:
        """POST /api/voice/end."""
        await self._request("POST", "/api/voice/end", json={"roomName": room_name})

    async def test_connection(self) -> Dict[str, Any]:
        """GET /api/voice/test-connection."""
        return await self._request("GET", "/api/voice/test-connection")

    async def clear_memory(self, session_id: str) -> Dict[str, Any]:
        """POST /api/voice/clear-memory."""
        return await self._request("POST", "/api/voice/clear-memory", json={"sessionId": session_id})
