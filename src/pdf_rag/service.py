"""Composition root — the two operations the outside world calls.

Clients for the embedding provider, vector store and chat model are
built once by :func:`build_service` and shared by every request.
"""

from __future__ import annotations

import logging

from pdf_rag.answering.generator import AnswerGenerator
from pdf_rag.answering.graph import RetrievalOrchestrator
from pdf_rag.answering.llm import get_llm
from pdf_rag.config import Settings, settings
from pdf_rag.errors import ValidationError
from pdf_rag.ingestion.embedder import EmbeddingGenerator
from pdf_rag.ingestion.loader import load_pdf_bytes
from pdf_rag.ingestion.pipeline import IngestionOrchestrator
from pdf_rag.outcomes import AnswerOutcome, IngestOutcome, InvalidRequest
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.factory import build_vector_store

logger = logging.getLogger(__name__)


class RAGService:
    """Validate input, then hand off to the ingestion or retrieval pipeline."""

    def __init__(
        self,
        ingestion: IngestionOrchestrator,
        retrieval: RetrievalOrchestrator,
        store: VectorStoreBase,
    ) -> None:
        self.ingestion = ingestion
        self.retrieval = retrieval
        self.store = store

    def ingest(self, document_bytes: bytes, *, filename: str = "document.pdf") -> IngestOutcome:
        """Store an uploaded PDF as embedded chunks."""
        try:
            documents = load_pdf_bytes(document_bytes, source=filename)
        except ValidationError as exc:
            logger.info("Rejected upload %s: %s", filename, exc)
            return InvalidRequest(message=str(exc))
        return self.ingestion.ingest(documents)

    def answer(self, question: str | None) -> AnswerOutcome:
        """Answer *question* from the indexed documents."""
        if question is None or not question.strip():
            return InvalidRequest(message="Question is required")
        logger.info("Question: %r", question)
        return self.retrieval.answer(question)

    def document_count(self) -> int:
        return self.store.count()

    def ready(self) -> bool:
        """Whether the vector index is reachable."""
        return self.store.health_check()


def build_service(cfg: Settings = settings) -> RAGService:
    """Construct every client once and wire the orchestrators."""
    store = build_vector_store(cfg)
    store.verify_compatibility()

    embedder = EmbeddingGenerator.from_settings(cfg)
    generator = AnswerGenerator(
        get_llm(cfg),
        timeout=cfg.request_timeout_seconds,
        max_attempts=cfg.max_attempts,
        backoff=cfg.retry_backoff_seconds,
    )
    ingestion = IngestionOrchestrator(
        embedder,
        store,
        chunk_size=cfg.chunk_size,
        chunk_overlap=cfg.chunk_overlap,
        max_workers=cfg.ingest_max_workers,
    )
    retrieval = RetrievalOrchestrator(
        embedder,
        store,
        generator,
        top_k=cfg.retrieval_top_k,
        similarity_threshold=cfg.similarity_threshold,
        fallback_max_chars=cfg.fallback_max_chars,
    )
    logger.info(
        "Service ready: embeddings=%s (dim=%d), llm=%s, store=%s",
        cfg.embedding_model,
        cfg.embedding_dimension,
        cfg.llm_model_name,
        cfg.vector_backend,
    )
    return RAGService(ingestion, retrieval, store)
