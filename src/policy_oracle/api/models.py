"""
API Models for the Policy Oracle Service

This module defines all Pydantic models used for request/response validation
across the ingestion, chat, and conversation endpoints.

Field aliases follow the wire format used by the browser client
(`filePath`, `conversationId`).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, Field, ConfigDict

from ..retrieval.models import Citation


# ---------------------------------------------------------------------
# Ingestion Models
# ---------------------------------------------------------------------

class ProcessDocumentRequest(BaseModel):
    """
    Trigger ingestion of an uploaded document by its storage path.
    """
    file_path: str = Field(..., min_length=1, alias="filePath")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ProcessDocumentResponse(BaseModel):
    success: bool = True
    chunks: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatMessage(BaseModel):
    """
    Single message in a chat conversation.
    """
    role: Literal["user", "assistant"]
    content: str

    model_config = ConfigDict(extra="forbid")


class ChatRequest(BaseModel):
    """
    Chat completion request payload. The last message is the question.
    """
    messages: List[ChatMessage] = Field(..., min_length=1)
    conversation_id: str = Field(..., min_length=1, alias="conversationId")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


# ---------------------------------------------------------------------
# Conversation Models
# ---------------------------------------------------------------------

class CreateConversationRequest(BaseModel):
    title: str = Field(..., min_length=1)
    user_id: Optional[uuid.UUID] = None

    model_config = ConfigDict(extra="forbid")


class ConversationResponse(BaseModel):
    id: uuid.UUID
    title: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AddMessageRequest(BaseModel):
    """
    Persist one turn. Assistant turns may carry the citations they were
    answered with.
    """
    role: Literal["user", "assistant"]
    content: str
    citations: Optional[List[Citation]] = None

    model_config = ConfigDict(extra="forbid")


class MessageResponse(BaseModel):
    id: uuid.UUID
    role: str
    content: str
    citations: Optional[List[Citation]] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
