"""
Conversation Store

Database-backed conversation history. User and assistant turns are
persisted in order; assistant turns keep the citation list they were
answered with.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Conversation, Message

TITLE_MAX_LENGTH = 80


class ConversationStore:
    """
    Repository over the `conversations` and `messages` tables.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_conversation(
        self,
        title: str,
        user_id: Optional[uuid.UUID] = None,
    ) -> Conversation:
        """
        Create a conversation titled after its opening question.

        The title is truncated to `TITLE_MAX_LENGTH` characters.
        """
        conversation = Conversation(
            id=uuid.uuid4(),
            title=title.strip()[:TITLE_MAX_LENGTH],
            user_id=user_id,
        )
        self._session.add(conversation)
        await self._session.flush()
        return conversation

    async def get_conversation(self, conversation_id: uuid.UUID) -> Optional[Conversation]:
        return await self._session.get(Conversation, conversation_id)

    async def add_message(
        self,
        conversation_id: uuid.UUID,
        role: str,
        content: str,
        citations: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Message:
        """
        Append a turn to a conversation.
        """
        message = Message(
            id=uuid.uuid4(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            citations=list(citations) if citations is not None else None,
        )
        self._session.add(message)
        await self._session.flush()
        return message

    async def list_messages(self, conversation_id: uuid.UUID) -> List[Message]:
        """Return the conversation's messages ordered by creation time."""
        result = await self._session.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at, Message.id)
        )
        return list(result.scalars().all())
