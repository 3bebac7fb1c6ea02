"""
Retrieval Data Models

Citation is the display-oriented projection of a matched chunk. It is
recomputed for every query and is what the streaming relay sends to the
client ahead of the answer tokens.
"""

from __future__ import annotations

from typing import List
from pydantic import BaseModel, Field, ConfigDict

SNIPPET_LENGTH = 300


class Citation(BaseModel):
    """
    Evidence shown next to an answer.
    """

    document_title: str = Field(
        ...,
        description="Title of the document the chunk belongs to.",
    )

    page_number: int = Field(
        default=0,
        ge=0,
        description="Estimated page of the chunk; 0 when unknown.",
    )

    section_title: str = Field(
        default="",
        description="Section heading of the chunk; empty when unknown.",
    )

    content: str = Field(
        ...,
        max_length=SNIPPET_LENGTH,
        description="Leading snippet of the chunk content.",
    )

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class RetrievalResult(BaseModel):
    """
    Context block for the prompt plus the citations backing it.
    """

    context: str
    citations: List[Citation] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
