"""
OpenAI-compatible chat client.

Works against any provider exposing ``/chat/completions`` with Bearer auth
(OpenAI, DeepSeek, xAI). Failures are wrapped in UpstreamError; retries
are left to the caller.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from src.session.exceptions import ConfigurationError, UpstreamError

logger = structlog.get_logger("chat")


class OpenAICompatibleClient:
    """Client for OpenAI-compatible Chat Completions APIs."""

    def __init__(
        self,
        api_key: Optional[str],
        endpoint: str,
        model: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ConfigurationError("OpenAI API key not set (set OPENAI_API_KEY)", missing=["OPENAI_API_KEY"])
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self._http_client = http_client

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create a reusable httpx client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=3),
            )
        return self._http_client

    async def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 1024,
        timeout: float = 60.0,
    ) -> str:
        """
        Send a Chat Completions request.

        Returns:
            Assistant message content (may be empty)

        Raises:
            UpstreamError: HTTP error, transport error or malformed response
        """
        url = f"{self.endpoint}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        client = self._get_http_client()
        try:
            response = await client.post(url, headers=headers, json=payload, timeout=timeout)
            response.raise_for_status()
            data = response.json()
            choice = data["choices"][0]
        except httpx.HTTPStatusError as e:
            detail = (e.response.text or "")[:200]
            logger.error("llm_api_error", status=e.response.status_code, detail=detail)
            raise UpstreamError(f"LLM API error (status {e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error("llm_request_failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamError(f"LLM request failed: {e}") from e
        except (KeyError, IndexError, ValueError) as e:
            logger.error("llm_response_malformed", error=str(e))
            raise UpstreamError("LLM returned a malformed response") from e

        content = (choice.get("message") or {}).get("content") or ""
        finish_reason = choice.get("finish_reason", "unknown")
        if not content:
            logger.warning("llm_empty_content", finish_reason=finish_reason, usage=data.get("usage", {}))
        elif finish_reason == "length":
            logger.warning("llm_response_truncated", content_length=len(content))
        return content

    async def aclose(self) -> None:
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
