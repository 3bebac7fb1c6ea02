"""
Streaming relay: one synthetic citation frame, then a verbatim pipe of the
upstream event stream.

The relay never parses upstream bytes, so the upstream's own delta framing
and its completion sentinel reach the client unchanged.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Sequence

import httpx

from ..retrieval.models import Citation
from .client import UpstreamStream

logger = logging.getLogger("oracle.relay")


def format_event(payload: dict) -> bytes:
    """Frame `payload` as a single server-sent event."""
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


def format_citation_event(citations: Sequence[Citation]) -> bytes:
    return format_event({"citations": [c.model_dump() for c in citations]})


async def relay_stream(
    upstream: UpstreamStream,
    citations: Sequence[Citation],
) -> AsyncIterator[bytes]:
    """
    Yield the citation frame (if any citations exist), then every upstream
    chunk in order.

    The upstream is closed when it ends, when reading it fails, and when
    the consumer stops iterating (client disconnect cancels or closes this
    generator).
    """
    try:
        if citations:
            yield format_citation_event(citations)

        async for chunk in upstream.aiter_bytes():
            yield chunk
    except httpx.HTTPError as exc:
        logger.error("Upstream stream aborted (%s): %s", type(exc).__name__, str(exc))
    finally:
        await upstream.aclose()
