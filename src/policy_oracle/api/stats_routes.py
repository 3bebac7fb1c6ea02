"""
Usage Statistics

Admin overview of the corpus and chat activity.

Security
--------
All endpoints are protected by `verify_admin` which requires:
- `x-admin-key` header OR
- `key` query parameter

Metrics Tracked
---------------
- Documents (total and per ingestion status)
- Indexed chunks
- Conversations
- Messages
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Header, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel

from ..config import settings
from ..db import get_async_session
from ..db.models import Conversation, Document, DocumentChunk, DocumentStatus, Message

router = APIRouter(prefix="/stats", tags=["stats"])


# ---------------------------------------------------------------------
# Security Dependency
# ---------------------------------------------------------------------

async def verify_admin(
    x_admin_key: Optional[str] = Header(None, alias="x-admin-key"),
    key: Optional[str] = Query(None)
):
    """
    Verify the request is from an admin using the configured API key.
    Checks header first, then query param.
    """
    expected_key = settings.admin_api_key.get_secret_value() if settings.admin_api_key else None

    if not expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access is not configured (ADMIN_API_KEY missing)"
        )

    provided_key = x_admin_key or key

    if not provided_key or provided_key != expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin API key"
        )


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------

class OverviewStats(BaseModel):
    total_documents: int
    documents_by_status: Dict[str, int]
    total_chunks: int
    total_conversations: int
    total_messages: int


# ---------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------

@router.get("/overview", response_model=OverviewStats, dependencies=[Depends(verify_admin)])
async def get_overview_stats(
    db: AsyncSession = Depends(get_async_session),
):
    """
    Snapshot counts for the admin dashboard.
    """
    # 1. Documents per status
    status_query = (
        select(Document.status, func.count(Document.id).label("document_count"))
        .group_by(Document.status)
    )
    status_result = await db.execute(status_query)
    by_status = {s.value: 0 for s in DocumentStatus}
    for row in status_result:
        key = row.status.value if isinstance(row.status, DocumentStatus) else str(row.status)
        by_status[key] = row.document_count or 0

    # 2. Totals
    chunk_total = (await db.execute(select(func.count(DocumentChunk.id)))).scalar() or 0
    conversation_total = (await db.execute(select(func.count(Conversation.id)))).scalar() or 0
    message_total = (await db.execute(select(func.count(Message.id)))).scalar() or 0

    return OverviewStats(
        total_documents=sum(by_status.values()),
        documents_by_status=by_status,
        total_chunks=chunk_total,
        total_conversations=conversation_total,
        total_messages=message_total,
    )
