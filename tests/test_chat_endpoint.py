"""
Chat Endpoint Tests

Retrieval is replaced with a canned engine and the upstream completion
service with httpx.MockTransport, so the full request path (prompt
assembly, error translation, relay) runs without network or database.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from policy_oracle.api.dependencies import get_chat_client, get_retrieval_engine
from policy_oracle.client.stream_consumer import StreamConsumer
from policy_oracle.llm.client import ChatCompletionClient
from policy_oracle.retrieval.engine import NO_DOCUMENTS_CONTEXT, RetrievalEngine
from policy_oracle.retrieval.models import Citation, RetrievalResult

UPSTREAM_BODY = (
    b'data: {"choices":[{"delta":{"content":"Contractors are "}}]}\n\n'
    b'data: {"choices":[{"delta":{"content":"not eligible (Handbook, p. 4)."}}]}\n\n'
    b"data: [DONE]\n\n"
)

RETRIEVED = RetrievalResult(
    context="\n---\nSource: Handbook, Page 4, Section: N/A\nContractors are not eligible for leave.\n",
    citations=[
        Citation(
            document_title="Handbook",
            page_number=4,
            section_title="",
            content="Contractors are not eligible for leave.",
        )
    ],
)

REQUEST = {
    "messages": [
        {"role": "user", "content": "What is the leave policy?"},
        {"role": "assistant", "content": "Twenty days per year."},
        {"role": "user", "content": "Does it apply to contractors?"},
    ],
    "conversationId": "4c1e7a8e-5b7d-4a53-9d0e-6f3f1c1b2a10",
}


@pytest.fixture
def mock_engine():
    engine = AsyncMock(spec=RetrievalEngine)
    engine.retrieve.return_value = RETRIEVED
    return engine


@pytest.fixture
def upstream_requests():
    return []


def _install(app, mock_engine, upstream_requests, status_code=200, body=UPSTREAM_BODY):
    def handler(request: httpx.Request) -> httpx.Response:
        upstream_requests.append(json.loads(request.content))
        if status_code != 200:
            return httpx.Response(status_code, json={"error": {"message": "nope"}})
        return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

    llm = ChatCompletionClient(
        api_key="test-key",
        base_url="http://llm.test/v1",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_retrieval_engine] = lambda: mock_engine
    app.dependency_overrides[get_chat_client] = lambda: llm


def test_streams_citations_then_upstream_tokens(app, client, mock_engine, upstream_requests):
    _install(app, mock_engine, upstream_requests)

    resp = client.post("/chat", json=REQUEST)

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    citation_frame = b"data: " + json.dumps({"citations": [c.model_dump() for c in RETRIEVED.citations]}).encode() + b"\n\n"
    assert resp.content == citation_frame + UPSTREAM_BODY

    consumer = StreamConsumer()
    consumer.feed(resp.content)
    assert consumer.content == "Contractors are not eligible (Handbook, p. 4)."
    assert consumer.citations == [c.model_dump() for c in RETRIEVED.citations]


def test_prompt_uses_latest_question_and_full_history(app, client, mock_engine, upstream_requests):
    _install(app, mock_engine, upstream_requests)

    client.post("/chat", json=REQUEST)

    mock_engine.retrieve.assert_awaited_once_with("Does it apply to contractors?")
    sent = upstream_requests[0]
    assert sent["stream"] is True
    assert sent["messages"][0]["role"] == "system"
    assert RETRIEVED.context in sent["messages"][0]["content"]
    assert sent["messages"][1:] == REQUEST["messages"]


def test_no_citation_frame_without_matches(app, client, mock_engine, upstream_requests):
    mock_engine.retrieve.return_value = RetrievalResult(context=NO_DOCUMENTS_CONTEXT)
    _install(app, mock_engine, upstream_requests)

    resp = client.post("/chat", json=REQUEST)

    assert resp.status_code == 200
    assert resp.content == UPSTREAM_BODY
    assert NO_DOCUMENTS_CONTEXT in upstream_requests[0]["messages"][0]["content"]


@pytest.mark.parametrize(
    "upstream_status, expected_status, expected_error",
    [
        (429, 429, "Rate limit exceeded. Please try again in a moment."),
        (402, 402, "AI usage limit reached. Please add credits."),
        (500, 500, "AI service error"),
        (401, 500, "AI service error"),
    ],
)
def test_upstream_errors_are_json_not_streams(
    app, client, mock_engine, upstream_requests, upstream_status, expected_status, expected_error
):
    _install(app, mock_engine, upstream_requests, status_code=upstream_status)

    resp = client.post("/chat", json=REQUEST)

    assert resp.status_code == expected_status
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {"error": expected_error}


def test_empty_message_list_is_rejected(app, client, mock_engine, upstream_requests):
    _install(app, mock_engine, upstream_requests)

    resp = client.post("/chat", json={"messages": [], "conversationId": "x"})

    assert resp.status_code == 422
    assert resp.json()["error"].startswith("messages: ")
    assert upstream_requests == []


def test_retrieval_timeout_is_a_json_error(app, mock_engine, upstream_requests):
    mock_engine.retrieve.side_effect = asyncio.TimeoutError()
    _install(app, mock_engine, upstream_requests)

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.post("/chat", json=REQUEST)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
    assert upstream_requests == []


def test_conversation_id_is_required(app, client, mock_engine, upstream_requests):
    _install(app, mock_engine, upstream_requests)

    resp = client.post("/chat", json={"messages": REQUEST["messages"]})

    assert resp.status_code == 422
    assert resp.json() == {"error": "conversationId is required"}
    mock_engine.retrieve.assert_not_awaited()
