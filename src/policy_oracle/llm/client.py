"""
Upstream Chat-Completion Client

Opens a streaming request against an OpenAI-compatible `/chat/completions`
endpoint. Non-success responses are translated into distinct error
categories before any byte reaches the caller; a successful response is
handed back as an open `UpstreamStream` whose body has not been read.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..config import settings
from ..core.errors import (
    UpstreamQuotaError,
    UpstreamRateLimitError,
    UpstreamServiceError,
)

logger = logging.getLogger("oracle.llm")


class UpstreamStream:
    """
    An open upstream response body.

    Owns both the response and the HTTP client that produced it; `aclose()`
    releases both and is safe to call more than once.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._closed = False

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class ChatCompletionClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.llm_api_key.get_secret_value()
        self.base_url = (base_url or str(settings.llm_base_url)).rstrip("/")
        self.model = model or settings.llm_model
        self.connect_timeout = connect_timeout or settings.upstream_connect_timeout
        self._transport = transport

    def _timeout(self) -> httpx.Timeout:
        # Token streams may idle between deltas; only connection setup is bounded.
        return httpx.Timeout(
            connect=self.connect_timeout,
            write=self.connect_timeout,
            pool=self.connect_timeout,
            read=None,
        )

    async def open_stream(self, messages: List[Dict[str, Any]]) -> UpstreamStream:
        """
        Start a streaming completion for `messages`.

        Raises
        ------
        UpstreamRateLimitError
            Upstream answered 429.
        UpstreamQuotaError
            Upstream answered 402.
        UpstreamServiceError
            Any other non-2xx answer, or a transport failure.
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": True,
        }

        client = httpx.AsyncClient(timeout=self._timeout(), transport=self._transport)
        try:
            request = client.build_request(
                "POST",
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Upstream request failed (%s): %s", type(exc).__name__, str(exc))
            raise UpstreamServiceError() from exc

        if not response.is_success:
            try:
                await self._raise_for_status(response)
            finally:
                await response.aclose()
                await client.aclose()

        return UpstreamStream(client, response)

    @staticmethod
    async def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 429:
            raise UpstreamRateLimitError()
        if response.status_code == 402:
            raise UpstreamQuotaError()

        body = await response.aread()
        logger.error(
            "Upstream error: status=%d body=%s",
            response.status_code,
            body.decode("utf-8", errors="replace")[:1000],
        )
        raise UpstreamServiceError()
