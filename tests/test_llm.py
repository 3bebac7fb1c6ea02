"""
Upstream Client, Prompt and Relay Tests

The upstream chat-completion service is simulated with httpx.MockTransport.
"""

import json

import httpx
import pytest

from policy_oracle.core.errors import (
    UpstreamQuotaError,
    UpstreamRateLimitError,
    UpstreamServiceError,
)
from policy_oracle.llm.client import ChatCompletionClient
from policy_oracle.llm.prompts import REFUSAL_SENTENCE, build_messages
from policy_oracle.llm.relay import format_citation_event, relay_stream
from policy_oracle.retrieval.models import Citation

UPSTREAM_BODY = [
    b'data: {"choices":[{"delta":{"content":"Remote work "}}]}\n\n',
    b'data: {"choices":[{"delta":{"content":"needs approval."}}]}\n\n',
    b"data: [DONE]\n\n",
]

CITATIONS = [
    Citation(
        document_title="Employee Handbook",
        page_number=3,
        section_title="",
        content="Remote work requires approval.",
    )
]


class FakeUpstream:
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    async def aiter_bytes(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


async def _collect(agen):
    return [chunk async for chunk in agen]


# ---------------------------------------------------------------------
# Prompt assembly
# ---------------------------------------------------------------------

def test_system_message_is_prepended_to_history():
    history = [
        {"role": "user", "content": "What is the leave policy?"},
        {"role": "assistant", "content": "Twenty days per year."},
        {"role": "user", "content": "And for contractors?"},
    ]
    messages = build_messages("\n---\nSource: Handbook, Page 1, Section: N/A\nLeave text\n", history)

    assert messages[0]["role"] == "system"
    assert "Policy Oracle" in messages[0]["content"]
    assert REFUSAL_SENTENCE in messages[0]["content"]
    assert messages[0]["content"].endswith("Leave text\n")
    assert messages[1:] == history


# ---------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------

async def test_citation_frame_precedes_upstream_bytes():
    upstream = FakeUpstream(UPSTREAM_BODY)

    out = await _collect(relay_stream(upstream, CITATIONS))

    assert out[0].startswith(b"data: ") and out[0].endswith(b"\n\n")
    frame = json.loads(out[0][len(b"data: "):].decode())
    assert frame == {"citations": [c.model_dump() for c in CITATIONS]}
    assert out[1:] == UPSTREAM_BODY
    assert upstream.closed


async def test_no_citations_means_pure_passthrough():
    upstream = FakeUpstream(UPSTREAM_BODY)

    out = await _collect(relay_stream(upstream, []))

    assert out == UPSTREAM_BODY
    assert upstream.closed


async def test_upstream_error_ends_output_and_closes():
    upstream = FakeUpstream(UPSTREAM_BODY[:1], error=httpx.ReadError("connection reset"))

    out = await _collect(relay_stream(upstream, CITATIONS))

    assert out == [format_citation_event(CITATIONS), UPSTREAM_BODY[0]]
    assert upstream.closed


async def test_client_disconnect_closes_upstream():
    upstream = FakeUpstream(UPSTREAM_BODY)
    agen = relay_stream(upstream, CITATIONS)

    first = await agen.__anext__()
    assert first == format_citation_event(CITATIONS)
    await agen.aclose()

    assert upstream.closed


# ---------------------------------------------------------------------
# Upstream client
# ---------------------------------------------------------------------

def _client(handler) -> ChatCompletionClient:
    return ChatCompletionClient(
        api_key="test-key",
        base_url="http://llm.test/v1",
        model="test-model",
        transport=httpx.MockTransport(handler),
    )


async def test_open_stream_posts_streaming_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            content=b"".join(UPSTREAM_BODY),
            headers={"Content-Type": "text/event-stream"},
        )

    messages = [{"role": "system", "content": "rules"}, {"role": "user", "content": "hi"}]
    upstream = await _client(handler).open_stream(messages)
    try:
        body = b"".join([chunk async for chunk in upstream.aiter_bytes()])
    finally:
        await upstream.aclose()

    assert seen["url"] == "http://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"] == {"model": "test-model", "messages": messages, "stream": True}
    assert body == b"".join(UPSTREAM_BODY)


@pytest.mark.parametrize(
    "status_code, error_cls",
    [
        (429, UpstreamRateLimitError),
        (402, UpstreamQuotaError),
        (500, UpstreamServiceError),
        (503, UpstreamServiceError),
    ],
)
async def test_upstream_failures_are_categorised(status_code, error_cls):
    def handler(request):
        return httpx.Response(status_code, json={"error": "upstream says no"})

    with pytest.raises(error_cls) as excinfo:
        await _client(handler).open_stream([{"role": "user", "content": "hi"}])

    assert excinfo.value.status_code == (status_code if status_code in (429, 402) else 500)


async def test_transport_failure_is_a_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(UpstreamServiceError):
        await _client(handler).open_stream([{"role": "user", "content": "hi"}])


def test_only_connection_setup_is_time_bounded():
    timeout = ChatCompletionClient(api_key="k", base_url="http://llm.test/v1", connect_timeout=7.5)._timeout()

    assert timeout.read is None
    assert timeout.connect == 7.5
    assert timeout.write == 7.5
    assert timeout.pool == 7.5
