"""Ingestion orchestrator — chunk, embed and store a document."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

from pdf_rag.errors import RAGError
from pdf_rag.ingestion.chunker import CharacterWindowSplitter, chunk_documents
from pdf_rag.outcomes import IngestFailed, Ingested

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from pdf_rag.ingestion.embedder import EmbeddingGenerator
    from pdf_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Drive Chunker → Embedding Generator → Vector Index for one document.

    Chunks are processed on a pool of *max_workers* threads
    (``max_workers=1`` is strictly sequential).  The first failure stops
    new chunks from starting; chunks already stored stay in the index.

    Parameters
    ----------
    embedder:
        Shared :class:`EmbeddingGenerator`.
    store:
        Shared vector store.
    chunk_size / chunk_overlap:
        Character-window parameters, validated on construction.
    max_workers:
        Upper bound on concurrently processed chunks.
    """

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: VectorStoreBase,
        *,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        max_workers: int = 1,
    ) -> None:
        CharacterWindowSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        self._embedder = embedder
        self._store = store
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.max_workers = max(1, max_workers)

    def ingest(self, documents: list[Document]) -> Ingested | IngestFailed:
        """Chunk *documents* and store every chunk with its embedding."""
        chunks = chunk_documents(documents, chunk_size=self.chunk_size, chunk_overlap=self.chunk_overlap)
        logger.info("Ingesting %d chunk(s) with %d worker(s)", len(chunks), self.max_workers)

        inserted: dict[int, str] = {}
        failures: dict[int, RAGError] = {}
        stop = threading.Event()

        def work(index: int, chunk: Document) -> str | None:
            if stop.is_set():
                return None
            try:
                vector = self._embedder.embed(chunk.page_content)
                return self._store.insert(chunk.page_content, chunk.metadata, vector)
            except RAGError:
                stop.set()
                raise

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="ingest") as pool:
            futures = {pool.submit(work, i, chunk): i for i, chunk in enumerate(chunks)}
            for future in as_completed(futures):
                index = futures[future]
                try:
                    chunk_id = future.result()
                except RAGError as exc:
                    failures[index] = exc
                    continue
                if chunk_id is not None:
                    inserted[index] = chunk_id

        chunk_ids = [inserted[i] for i in sorted(inserted)]
        if failures:
            first = min(failures)
            exc = failures[first]
            logger.error(
                "Ingestion failed at chunk %d/%d (%s): %s; %d chunk(s) already stored",
                first,
                len(chunks),
                exc.kind,
                exc,
                len(chunk_ids),
            )
            return IngestFailed.from_error(
                exc,
                chunks_total=len(chunks),
                chunks_inserted=len(chunk_ids),
                inserted_chunk_ids=chunk_ids,
                failed_chunk_index=first,
            )

        logger.info("Stored %d chunk(s)", len(chunk_ids))
        return Ingested(chunks_inserted=len(chunk_ids), chunk_ids=chunk_ids)
