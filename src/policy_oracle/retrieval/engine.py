"""
Keyword Retrieval Engine

Turns the latest user utterance into a keyword query, fetches matching
chunks from the document store, and renders them into a context block and
an ordered citation list.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..config import settings
from ..db.document_store import DocumentStore
from .models import Citation, RetrievalResult, SNIPPET_LENGTH

logger = logging.getLogger("oracle.retrieval")

UNKNOWN_DOCUMENT = "Unknown Document"
NO_DOCUMENTS_CONTEXT = (
    "No documents have been uploaded or indexed yet. "
    "Please let the user know they need to upload documents first."
)
CONTEXT_DELIMITER = "---"


def build_search_query(utterance: str, max_tokens: int = 5) -> str:
    """
    Keep the first `max_tokens` whitespace-separated tokens of the
    utterance and join them with the boolean AND operator.
    """
    return " & ".join(utterance.split()[:max_tokens])


def format_source_block(
    title: str,
    page_number: Optional[int],
    section_title: Optional[str],
    content: str,
) -> str:
    """Render one matched chunk as a delimited context block."""
    header = (
        f"Source: {title}, Page {page_number or 'N/A'}, "
        f"Section: {section_title or 'N/A'}"
    )
    return f"\n{CONTEXT_DELIMITER}\n{header}\n{content}\n"


class RetrievalEngine:
    """
    Keyword retrieval over persisted document chunks.
    """

    def __init__(
        self,
        store: DocumentStore,
        limit: Optional[int] = None,
        query_token_limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._store = store
        self._limit = limit or settings.retrieval_limit
        self._query_token_limit = query_token_limit or settings.query_token_limit
        self._timeout = timeout or settings.search_timeout

    async def retrieve(self, utterance: str) -> RetrievalResult:
        """
        Build the context block and citations for `utterance`.

        Returns
        -------
        RetrievalResult
            When nothing matches, `context` is a notice that no documents are
            indexed and `citations` is empty.
        """
        query = build_search_query(utterance, self._query_token_limit)
        if not query:
            return RetrievalResult(context=NO_DOCUMENTS_CONTEXT)

        matches = await asyncio.wait_for(
            self._store.search_chunks(query, limit=self._limit),
            timeout=self._timeout,
        )
        logger.info("Keyword query %r matched %d chunks", query, len(matches))

        if not matches:
            return RetrievalResult(context=NO_DOCUMENTS_CONTEXT)

        # dict.fromkeys keeps first-seen order
        document_ids = list(dict.fromkeys(m.document_id for m in matches))
        titles = await asyncio.wait_for(
            self._store.get_titles(document_ids),
            timeout=self._timeout,
        )

        blocks: List[str] = []
        citations: List[Citation] = []
        for match in matches:
            title = titles.get(match.document_id, UNKNOWN_DOCUMENT)
            blocks.append(
                format_source_block(title, match.page_number, match.section_title, match.content)
            )
            citations.append(
                Citation(
                    document_title=title,
                    page_number=match.page_number or 0,
                    section_title=match.section_title or "",
                    content=match.content[:SNIPPET_LENGTH],
                )
            )

        return RetrievalResult(context="".join(blocks), citations=citations)
