import httpx
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from .stream_consumer import StreamConsumer


class ChatRequestError(RuntimeError):
    """Raised when the chat endpoint answers with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


@dataclass
class AssistantReply:
    content: str
    citations: List[Dict[str, Any]] = field(default_factory=list)


class PolicyOracleClient:
    """
    Async client for the Policy Oracle chat API.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def stream_chat(
        self,
        messages: List[Dict[str, str]],
        conversation_id: str,
        consumer: Optional[StreamConsumer] = None,
    ) -> AsyncIterator[str]:
        """
        Send the conversation and yield assistant content deltas as they
        arrive. Citations are collected on `consumer`.

        Raises
        ------
        ChatRequestError
            If the service answers with a non-success status.
        """
        consumer = consumer or StreamConsumer()
        payload = {"messages": messages, "conversationId": conversation_id}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            async with client.stream(
                "POST",
                f"{self.base_url}/chat",
                json=payload,
                headers=self._headers(),
            ) as resp:
                if not resp.is_success:
                    await resp.aread()
                    raise ChatRequestError(resp.status_code, _error_message(resp))

                async for chunk in resp.aiter_bytes():
                    for delta in consumer.feed(chunk):
                        yield delta

    async def ask(
        self,
        messages: List[Dict[str, str]],
        conversation_id: str,
    ) -> AssistantReply:
        """Send the conversation and wait for the complete reply."""
        consumer = StreamConsumer()
        async for _ in self.stream_chat(messages, conversation_id, consumer=consumer):
            pass
        return AssistantReply(content=consumer.content, citations=consumer.citations or [])


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"Request failed with status {resp.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"Request failed with status {resp.status_code}"
