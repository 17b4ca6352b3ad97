"""Streaming client for an OpenAI-compatible chat-completions endpoint."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Sequence

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 90.0
ERROR_BODY_PREVIEW = 500


class UpstreamError(RuntimeError):
    """Raised when the segmentation service rejects or drops a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatCompletionsUpstream:
    """Yields the raw server-sent-event bytes of a streamed completion.

    Args:
        base_url: API root, for example ``https://api.example.com/v1``.
        api_key: Bearer token.
        model: Model name sent with every request.
        timeout: Request timeout in seconds.
        client: Optional shared client; one is created per stream otherwise.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _payload(
        self, messages: Sequence[dict[str, Any]], options: dict[str, Any]
    ) -> dict[str, Any]:
        return {"model": self.model, "messages": list(messages), **options, "stream": True}

    async def stream(
        self, messages: Sequence[dict[str, Any]], **options: Any
    ) -> AsyncIterator[bytes]:
        """Send ``messages`` and yield response body chunks as they arrive.

        Args:
            messages: Chat messages in the OpenAI format.
            **options: Extra request fields such as ``temperature``.

        Yields:
            Raw body bytes, split wherever the transport split them.

        Raises:
            UpstreamError: On an HTTP error status or a transport failure.
        """

        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        try:
            async with client.stream(
                "POST",
                self.endpoint,
                headers=headers,
                json=self._payload(messages, options),
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error(
                        "Upstream returned HTTP %d: %s",
                        response.status_code,
                        body[:ERROR_BODY_PREVIEW],
                    )
                    raise UpstreamError(
                        f"Upstream error {response.status_code}: {body[:ERROR_BODY_PREVIEW]}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as exc:
            logger.error("Upstream request failed: %s", exc)
            raise UpstreamError(f"Upstream request failed: {exc}") from exc
        finally:
            if owns_client:
                await client.aclose()
