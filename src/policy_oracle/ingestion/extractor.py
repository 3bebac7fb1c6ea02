"""
Best-effort PDF text extraction.

This is not a PDF parser. It scans the raw bytes in two passes:

1. Locate content streams delimited by ``stream`` / ``endstream``.
2. Pull text-bearing tokens out of each stream: parenthesized literal
   strings, and the payloads of ``[...] TJ`` array-show operators.

Known blind spot: compressed (FlateDecode) content streams are not
inflated. Their literal strings are unreadable, the scan yields almost
nothing, and extraction degrades to the printable-ASCII fallback, which
can produce poor-quality text. Extraction never raises.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, List

logger = logging.getLogger("oracle.ingestion")

MIN_EXTRACTED_LENGTH = 50

_STREAM_RE = re.compile(r"stream\r?\n(.*?)\r?\nendstream", re.DOTALL)
_LITERAL_RE = re.compile(r"\((.*?)\)")
_TJ_ARRAY_RE = re.compile(r"\[(.*?)\]\s*TJ")
_ESCAPE_RE = re.compile(r"\\([nr\\'\"])")
_ALPHA_RE = re.compile(r"[A-Za-z]")
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n]")
_WHITESPACE_RE = re.compile(r"\s+")

_ESCAPES = {"n": "\n", "r": "", "\\": "\\", "'": "'", '"': '"'}


def _unescape(fragment: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], fragment)


def _is_text(fragment: str) -> bool:
    return len(fragment) > 1 and _ALPHA_RE.search(fragment) is not None


def iter_content_streams(raw: str) -> Iterator[str]:
    """Yield the body of every ``stream ... endstream`` region."""
    for match in _STREAM_RE.finditer(raw):
        yield match.group(1)


def extract_stream_fragments(stream: str) -> List[str]:
    """
    Extract text fragments from a single content stream.

    Literal strings are collected first, then each ``TJ`` array is
    collapsed into one fragment by concatenating its literal strings.
    Fragments without letters, or shorter than two characters, are
    discarded.
    """
    fragments: List[str] = []

    for literal in _LITERAL_RE.findall(stream):
        cleaned = _unescape(literal)
        if _is_text(cleaned):
            fragments.append(cleaned)

    for array in _TJ_ARRAY_RE.findall(stream):
        joined = "".join(_unescape(part) for part in _LITERAL_RE.findall(array))
        if _is_text(joined):
            fragments.append(joined)

    return fragments


def ascii_fallback(raw: str) -> str:
    """Strip non-printable characters from the whole file and collapse whitespace."""
    printable = _NON_PRINTABLE_RE.sub(" ", raw)
    return _WHITESPACE_RE.sub(" ", printable).strip()


def extract_text(data: bytes) -> str:
    """
    Turn raw PDF bytes into a best-effort plaintext string.

    Parameters
    ----------
    data : bytes
        Full file content.

    Returns
    -------
    str
        Extracted text. When the structural scan yields fewer than
        `MIN_EXTRACTED_LENGTH` characters, the printable-ASCII fallback
        of the whole file is returned instead.
    """
    raw = data.decode("utf-8", errors="replace")

    fragments: List[str] = []
    for stream in iter_content_streams(raw):
        fragments.extend(extract_stream_fragments(stream))

    text = " ".join(fragments)
    if len(text.strip()) < MIN_EXTRACTED_LENGTH:
        logger.info(
            "Structured scan produced %d characters; using ASCII fallback",
            len(text.strip()),
        )
        return ascii_fallback(raw)

    return text
