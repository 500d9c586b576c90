"""Build the configured vector-store backend."""

from __future__ import annotations

import logging

from pdf_rag.config import Settings, settings
from pdf_rag.errors import ConfigurationError
from pdf_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


def build_vector_store(cfg: Settings = settings) -> VectorStoreBase:
    """Return the backend selected by ``cfg.vector_backend``.

    Backends with heavy client libraries are imported lazily so that the
    in-memory store works without chromadb or a database driver installed.
    """
    common = {
        "dimension": cfg.embedding_dimension,
        "embedding_model": cfg.embedding_model,
        "timeout": cfg.request_timeout_seconds,
        "max_attempts": cfg.max_attempts,
        "backoff": cfg.retry_backoff_seconds,
    }
    backend = cfg.vector_backend
    logger.info("Using %s vector store", backend)

    if backend == "memory":
        from pdf_rag.retrieval.memory_store import InMemoryVectorStore

        return InMemoryVectorStore(**common)
    if backend == "chroma":
        from pdf_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore(
            cfg.chroma_collection,
            host=cfg.chroma_host,
            port=cfg.chroma_port,
            auth_token=cfg.chroma_auth_token,
            **common,
        )
    if backend == "pgvector":
        from pdf_rag.retrieval.pgvector_store import PgVectorStore

        return PgVectorStore(cfg.pg_table, database_url=cfg.database_url, **common)

    raise ConfigurationError(f"Unsupported vector_backend={backend!r}")
