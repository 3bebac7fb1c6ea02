"""
Document Store

PostgreSQL-backed access to documents and their chunks: status lifecycle
updates for the ingestion pipeline, bulk chunk persistence, and keyword
full-text search for retrieval.
"""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence

from sqlalchemy import cast, func, insert, select, update
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Document, DocumentChunk, DocumentStatus
from ..config import settings
from ..ingestion.chunker import TextChunk


# Statuses from which an ingestion run may not start
BUSY_STATUSES = (DocumentStatus.PROCESSING, DocumentStatus.PROCESSED)


class MatchedChunk(NamedTuple):
    """A chunk returned by keyword search, in rank order."""
    document_id: uuid.UUID
    content: str
    page_number: Optional[int]
    section_title: Optional[str]


class DocumentStore:
    """
    Thin repository over the `documents` and `document_chunks` tables.

    The store never commits implicitly; callers decide transaction
    boundaries through `commit()` and `rollback()`.
    """

    def __init__(self, session: AsyncSession, search_config: Optional[str] = None) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        search_config : Optional[str]
            PostgreSQL text search configuration. Defaults to settings.search_config.
        """
        self._session = session
        self._search_config = search_config or settings.search_config

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def get_by_path(self, file_path: str) -> Optional[Document]:
        """Return the document stored at `file_path`, or None."""
        result = await self._session.execute(
            select(Document).where(Document.file_path == file_path)
        )
        return result.scalar_one_or_none()

    async def claim_for_processing(self, document_id: uuid.UUID) -> bool:
        """
        Move a document to `processing` if no run owns it yet.

        This is a compare-and-swap on the status column: the update only
        applies when the current status is neither `processing` nor
        `processed`.

        Returns
        -------
        bool
            True if this caller won the transition.
        """
        stmt = (
            update(Document)
            .where(
                Document.id == document_id,
                Document.status.not_in(BUSY_STATUSES),
            )
            .values(status=DocumentStatus.PROCESSING)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def set_status(
        self,
        document_id: uuid.UUID,
        status: DocumentStatus,
        page_count: Optional[int] = None,
    ) -> None:
        """Unconditionally write a terminal status (and optional page count)."""
        values: Dict[str, object] = {"status": status}
        if page_count is not None:
            values["page_count"] = page_count

        await self._session.execute(
            update(Document).where(Document.id == document_id).values(**values)
        )

    async def add_chunks(
        self,
        document_id: uuid.UUID,
        chunks: Sequence[TextChunk],
    ) -> int:
        """
        Bulk-insert chunks for a document.

        Returns
        -------
        int
            Number of chunks inserted.
        """
        if not chunks:
            return 0

        rows = [
            {
                "document_id": document_id,
                "content": chunk.content,
                "page_number": chunk.page_number,
                "chunk_index": chunk.chunk_index,
            }
            for chunk in chunks
        ]
        await self._session.execute(insert(DocumentChunk), rows)
        await self._session.flush()
        return len(rows)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def search_chunks(self, query: str, limit: int = 5) -> List[MatchedChunk]:
        """
        Plain-text keyword search over chunk content.

        Parameters
        ----------
        query : str
            Search text; parsed with `plainto_tsquery`, so every lexeme
            must match.
        limit : int
            Maximum number of chunks to return.

        Returns
        -------
        List[MatchedChunk]
            Matches ordered by `ts_rank` descending. Ties are broken by
            document id, then chunk index.
        """
        config = cast(self._search_config, REGCONFIG)
        document = func.to_tsvector(config, DocumentChunk.content)
        tsquery = func.plainto_tsquery(config, query)
        rank = func.ts_rank(document, tsquery)

        stmt = (
            select(
                DocumentChunk.document_id,
                DocumentChunk.content,
                DocumentChunk.page_number,
                DocumentChunk.section_title,
            )
            .where(document.op("@@")(tsquery))
            .order_by(
                rank.desc(),
                DocumentChunk.document_id,
                DocumentChunk.chunk_index,
            )
            .limit(limit)
        )

        result = await self._session.execute(stmt)
        return [
            MatchedChunk(
                document_id=row.document_id,
                content=row.content,
                page_number=row.page_number,
                section_title=row.section_title,
            )
            for row in result.all()
        ]

    async def get_titles(self, document_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, str]:
        """Batch-resolve document titles by id."""
        ids = list(document_ids)
        if not ids:
            return {}

        result = await self._session.execute(
            select(Document.id, Document.title).where(Document.id.in_(ids))
        )
        return {row.id: row.title for row in result.all()}
