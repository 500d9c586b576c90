"""Domain models for stored chunks and similarity results."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """A contiguous slice of document text as held by the vector index.

    Attributes
    ----------
    id:
        Backend-assigned identifier (``None`` before insertion).
    content:
        The chunk text; never empty.
    metadata:
        Provenance such as ``source``, ``page``, ``chunk_index`` and
        ``start_index``.
    embedding:
        The stored vector, when the backend returns it.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    content: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)
    embedding: list[float] | None = None

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", "unknown"))

    @property
    def chunk_index(self) -> int | None:
        return self.metadata.get("chunk_index")

    def short_ref(self) -> str:
        """Return a compact ``[source§chunk]`` reference string."""
        chunk = self.chunk_index if self.chunk_index is not None else "?"
        return f"[{self.source}§{chunk}]"


class SimilarityResult(BaseModel):
    """A stored chunk paired with its cosine similarity to a query."""

    chunk: Chunk
    similarity: float

    @property
    def content(self) -> str:
        return self.chunk.content

    def __str__(self) -> str:  # noqa: D105
        return f"{self.chunk.short_ref()} ({self.similarity:.4f}) {self.content[:120]}…"


def to_vector_literal(embedding: Sequence[float]) -> str:
    """Render *embedding* as a pgvector literal, e.g. ``[0.1,-0.25,3.0]``."""
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"
