"""
Chat Routes: Retrieval-Augmented Streaming Answers

This module implements the conversational endpoint. For every request it:

1. Takes the latest message as the question.
2. Runs keyword retrieval to build a context block and citation list.
3. Prepends the grounding system prompt to the full conversation.
4. Opens a streaming completion against the upstream service.
5. Relays the upstream event stream, preceded by one citation frame.

Upstream capacity errors (429, 402) and other upstream failures are raised
before the stream starts and rendered as JSON `{"error": ...}` responses.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from .models import ChatRequest
from .dependencies import get_chat_client, get_retrieval_engine
from ..llm.client import ChatCompletionClient
from ..llm.prompts import build_messages
from ..llm.relay import relay_stream
from ..retrieval.engine import RetrievalEngine

logger = logging.getLogger("oracle.chat")

router = APIRouter(tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post(
    "/chat",
    summary="Ask a question about the uploaded policy documents",
    response_class=StreamingResponse,
)
async def chat(
    req: ChatRequest,
    engine: Annotated[RetrievalEngine, Depends(get_retrieval_engine)],
    llm: Annotated[ChatCompletionClient, Depends(get_chat_client)],
) -> StreamingResponse:
    """
    Stream a grounded answer as server-sent events.

    The first event carries `{"citations": [...]}` when retrieval found
    anything; the rest of the body is the upstream stream, byte for byte.
    """
    history = [m.model_dump() for m in req.messages]
    question = req.messages[-1].content

    retrieval = await engine.retrieve(question)
    logger.info(
        "Chat request (conversation=%s): %d turns, %d citations",
        req.conversation_id,
        len(history),
        len(retrieval.citations),
    )

    upstream = await llm.open_stream(build_messages(retrieval.context, history))

    return StreamingResponse(
        relay_stream(upstream, retrieval.citations),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
