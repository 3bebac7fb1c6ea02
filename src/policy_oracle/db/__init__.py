"""
Database Package

Provides SQLAlchemy async session management, model definitions, and the
repositories used by ingestion, retrieval and conversation persistence.
"""

from .session import get_async_session, async_engine, AsyncSessionLocal
from .models import Base, Document, DocumentChunk, DocumentStatus, Conversation, Message
from .document_store import DocumentStore, MatchedChunk
from .conversation_store import ConversationStore

__all__ = [
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "Document",
    "DocumentChunk",
    "DocumentStatus",
    "Conversation",
    "Message",
    "DocumentStore",
    "MatchedChunk",
    "ConversationStore",
]
