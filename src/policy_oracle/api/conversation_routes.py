"""
Conversation Routes

Persist chat turns so conversations can be reloaded. The streaming chat
endpoint itself is stateless; clients store the user turn before asking and
the assistant turn (with its citations) once the stream has finished.
"""

import uuid
from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from .models import (
    AddMessageRequest,
    ConversationResponse,
    CreateConversationRequest,
    MessageResponse,
)
from .dependencies import get_conversation_store
from ..core.errors import ConversationNotFoundError
from ..db import ConversationStore

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post(
    "",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    req: CreateConversationRequest,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> ConversationResponse:
    conversation = await store.create_conversation(req.title, user_id=req.user_id)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: uuid.UUID,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> List[MessageResponse]:
    if await store.get_conversation(conversation_id) is None:
        raise ConversationNotFoundError()

    messages = await store.list_messages(conversation_id)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_message(
    conversation_id: uuid.UUID,
    req: AddMessageRequest,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
) -> MessageResponse:
    if await store.get_conversation(conversation_id) is None:
        raise ConversationNotFoundError()

    citations = [c.model_dump() for c in req.citations] if req.citations is not None else None
    message = await store.add_message(conversation_id, req.role, req.content, citations=citations)
    return MessageResponse.model_validate(message)
