"""
Retrieval — the vector index and its backends.

This module wraps the vector store behind a clean interface so that the
orchestrators never need to know which DB is backing retrieval.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend contract (insert / count / search).
- :class:`InMemoryVectorStore` — numpy-backed store for development and tests.
- :class:`ChromaVectorStore` — Chroma backend.
- :class:`PgVectorStore` — Postgres + pgvector backend.
- :class:`Chunk`, :class:`SimilarityResult` — data models.
- :func:`build_vector_store` — factory driven by settings.
"""

from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.factory import build_vector_store
from pdf_rag.retrieval.memory_store import InMemoryVectorStore
from pdf_rag.retrieval.models import Chunk, SimilarityResult, to_vector_literal

__all__ = [
    "ChromaVectorStore",
    "Chunk",
    "InMemoryVectorStore",
    "PgVectorStore",
    "SimilarityResult",
    "VectorStoreBase",
    "build_vector_store",
    "to_vector_literal",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import optional backends to avoid pulling in their clients at import time."""
    if name == "ChromaVectorStore":
        from pdf_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    if name == "PgVectorStore":
        from pdf_rag.retrieval.pgvector_store import PgVectorStore

        return PgVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
