"""
Client-side consumer for the chat event stream.

Reassembles network reads into lines, picks out `data:` frames, and turns
them into an incrementally growing assistant message plus a citation set.
A frame whose JSON does not parse is treated as a fragment split across
reads: it is pushed back onto the buffer and retried when more bytes
arrive.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, List, Optional, Union

logger = logging.getLogger("oracle.client")

DATA_PREFIX = "data: "
COMMENT_PREFIX = ":"
DONE_SENTINEL = "[DONE]"


def _delta_content(payload: Any) -> Optional[str]:
    try:
        return payload["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None


class StreamConsumer:
    """
    Incremental parser for one streamed assistant reply.

    Attributes
    ----------
    content : str
        Assistant text received so far.
    citations : Optional[list]
        Citation dicts from the citation frame, if one arrived.
    done : bool
        True once the termination sentinel was seen. The sentinel is
        advisory; callers keep reading until the connection ends.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.content = ""
        self.citations: Optional[List[dict]] = None
        self.done = False

    @property
    def pending(self) -> str:
        """Unprocessed buffered text."""
        return self._buffer

    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        """
        Consume one network read.

        Returns
        -------
        List[str]
            Content deltas surfaced by this read, in order.
        """
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        deltas: List[str] = []
        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break

            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]

            if line.endswith("\r"):
                line = line[:-1]
            if line.startswith(COMMENT_PREFIX) or line.strip() == "":
                continue
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                self.done = True
                break

            try:
                parsed = json.loads(payload)
            except ValueError:
                # Incomplete frame: wait for the rest of it
                logger.debug("Buffering partial frame (%d chars)", len(payload))
                self._buffer = line + "\n" + self._buffer
                break

            if isinstance(parsed, dict) and parsed.get("citations"):
                self.citations = parsed["citations"]

            content = _delta_content(parsed)
            if content:
                self.content += content
                deltas.append(content)

        return deltas
