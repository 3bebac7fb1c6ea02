"""
Document ingestion state machine.

A single run moves one document through

    pending -> processing -> processed | error

by downloading the uploaded PDF, extracting its text, chunking it, and
persisting the chunks. Failures after the document is claimed are
terminal for the run: the status becomes `error` and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from ..core.errors import DocumentNotFoundError, IngestionConflictError, StorageError
from ..db.document_store import DocumentStore
from ..db.models import DocumentStatus
from ..storage.blob_client import BlobStoreClient
from .chunker import chunk_text, estimated_page_count
from .extractor import extract_text

logger = logging.getLogger("oracle.ingestion")


@dataclass(frozen=True)
class IngestionResult:
    """Summary of a successful ingestion run."""
    document_id: uuid.UUID
    chunk_count: int
    page_count: int


class IngestionPipeline:
    """Runs ingestion for documents identified by their storage path."""

    def __init__(self, store: DocumentStore, blobs: BlobStoreClient) -> None:
        self._store = store
        self._blobs = blobs

    async def process(self, file_path: str) -> IngestionResult:
        """
        Ingest the document stored at `file_path`.

        Raises
        ------
        DocumentNotFoundError
            No document row references `file_path`.
        IngestionConflictError
            Another run already claimed or finished the document.
        StorageError
            The download or the chunk insert failed.

        Any exception raised after the claim leaves the document in `error`.
        """
        doc = await self._store.get_by_path(file_path)
        if doc is None:
            raise DocumentNotFoundError()

        # Rollback expires ORM state, so keep plain values
        document_id = doc.id
        page_count_hint = doc.page_count

        if not await self._store.claim_for_processing(document_id):
            logger.warning("Document %s is already processing or processed", document_id)
            raise IngestionConflictError()
        await self._store.commit()
        logger.info("Processing document %s (%s)", document_id, file_path)

        try:
            result = await self._run(document_id, file_path, page_count_hint)
        except Exception:
            await self._store.rollback()
            await self._fail(document_id)
            raise

        return result

    async def _run(
        self,
        document_id: uuid.UUID,
        file_path: str,
        page_count_hint: Optional[int],
    ) -> IngestionResult:
        # 1. Download
        data = await self._blobs.download(file_path)

        # 2. Extract & chunk
        text = await asyncio.to_thread(extract_text, data)
        chunks = chunk_text(text, page_count_hint)
        logger.info(
            "Extracted %d characters into %d chunks for document %s",
            len(text),
            len(chunks),
            document_id,
        )

        # 3. Persist chunks
        try:
            await self._store.add_chunks(document_id, chunks)
        except Exception as exc:
            logger.error("Chunk insert failed for document %s: %s", document_id, exc)
            raise StorageError("Failed to store document chunks") from exc

        # 4. Finalize
        page_count = estimated_page_count(chunks)
        await self._store.set_status(document_id, DocumentStatus.PROCESSED, page_count=page_count)
        await self._store.commit()

        return IngestionResult(
            document_id=document_id,
            chunk_count=len(chunks),
            page_count=page_count,
        )

    async def _fail(self, document_id: uuid.UUID) -> None:
        # Any failure after the claim must leave the run in `error`
        try:
            await self._store.set_status(document_id, DocumentStatus.ERROR)
            await self._store.commit()
        except Exception:
            logger.exception("Could not mark document %s as failed", document_id)
