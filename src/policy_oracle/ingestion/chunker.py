"""
Fixed-window text chunker.

Splits extracted document text into overlapping windows of
`CHUNK_SIZE` characters advancing by `CHUNK_SIZE - CHUNK_OVERLAP`.

Page numbers are a linear estimate: the text is assumed to be spread
evenly over `page_count_hint` pages. No real page boundaries are known
at this point, so the estimate is coarse.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

CHUNK_SIZE = 1000
CHUNK_OVERLAP = 200
MIN_CHUNK_LENGTH = 20
DEFAULT_PAGE_COUNT = 10


@dataclass(frozen=True)
class TextChunk:
    """A kept window of document text."""
    content: str
    page_number: int
    chunk_index: int


def chars_per_page(text_length: int, page_count_hint: Optional[int] = None) -> int:
    """Characters attributed to one page, never less than 1."""
    pages = max(1, page_count_hint or DEFAULT_PAGE_COUNT)
    return max(1, text_length // pages)


def chunk_text(text: str, page_count_hint: Optional[int] = None) -> List[TextChunk]:
    """
    Split `text` into overlapping, trimmed chunks.

    Windows whose trimmed content is shorter than `MIN_CHUNK_LENGTH` are
    dropped; `chunk_index` counts kept chunks only, so indexes are dense.
    Sliding stops once a window reaches the end of the text, since any
    later window would lie entirely inside it.

    Parameters
    ----------
    text : str
        Extracted plaintext.
    page_count_hint : Optional[int]
        Known page count of the document; `DEFAULT_PAGE_COUNT` when unset.

    Returns
    -------
    List[TextChunk]
        Chunks in document order.
    """
    stride = CHUNK_SIZE - CHUNK_OVERLAP
    per_page = chars_per_page(len(text), page_count_hint)

    chunks: List[TextChunk] = []
    for start in range(0, len(text), stride):
        content = text[start : start + CHUNK_SIZE].strip()
        if len(content) >= MIN_CHUNK_LENGTH:
            chunks.append(
                TextChunk(
                    content=content,
                    page_number=start // per_page + 1,
                    chunk_index=len(chunks),
                )
            )
        if start + CHUNK_SIZE >= len(text):
            break

    return chunks


def estimated_page_count(chunks: Sequence[TextChunk]) -> int:
    """
    Page count recorded on the document after ingestion.

    This is the page estimate of the last kept chunk (1 when nothing was
    kept), not a true page total.
    """
    if not chunks:
        return 1
    return chunks[-1].page_number
