"""In-process vector store backed by a numpy matrix."""

from __future__ import annotations

import threading
from typing import Any

import numpy as np

from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.models import Chunk, SimilarityResult


class InMemoryVectorStore(VectorStoreBase):
    """Exact cosine search over vectors kept in memory.

    Suitable for development and tests; contents are lost when the process
    exits.  Results with equal similarity come back in insertion order.
    """

    def __init__(self, collection_name: str = "in-memory", *, dimension: int, **kwargs: Any) -> None:
        super().__init__(collection_name, dimension=dimension, **kwargs)
        self._lock = threading.Lock()
        self._ids: set[str] = set()
        self._chunks: list[Chunk] = []
        self._matrix = np.empty((0, dimension), dtype=np.float64)

    def _insert(self, chunk_id: str, content: str, metadata: dict[str, Any], embedding: list[float]) -> None:
        chunk = Chunk(id=chunk_id, content=content, metadata=metadata, embedding=embedding)
        row = np.asarray(embedding, dtype=np.float64).reshape(1, -1)
        with self._lock:
            if chunk_id in self._ids:
                return
            self._ids.add(chunk_id)
            self._chunks.append(chunk)
            self._matrix = np.vstack([self._matrix, row])

    def _search(
        self,
        query_embedding: list[float],
        k: int,
        filter: dict[str, Any],
    ) -> list[SimilarityResult]:
        with self._lock:
            chunks = list(self._chunks)
            matrix = self._matrix

        if not chunks:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        order = np.argsort(-scores, kind="stable")
        results: list[SimilarityResult] = []
        for idx in order:
            chunk = chunks[idx]
            if not _matches(chunk.metadata, filter):
                continue
            results.append(SimilarityResult(chunk=chunk, similarity=float(scores[idx])))
            if len(results) == k:
                break
        return results

    def _count(self) -> int:
        with self._lock:
            return len(self._chunks)


def _matches(metadata: dict[str, Any], filter: dict[str, Any]) -> bool:
    return all(metadata.get(key) == value for key, value in filter.items())
