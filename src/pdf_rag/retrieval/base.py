"""Abstract base class for vector-store backends.

Adding a new backend (Pinecone, Weaviate, Qdrant …) only requires
subclassing :class:`VectorStoreBase` and implementing the three abstract
hooks.  The public methods add dimension checks, timeouts, retries and
error mapping, so every backend honours the same contract.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, TypeVar
from uuid import uuid4

from pdf_rag.errors import ConfigurationError, StorageError
from pdf_rag.resilience import call_with_timeout, retrying
from pdf_rag.retrieval.models import SimilarityResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / table / namespace.
    dimension:
        Length every stored and queried embedding must have.
    embedding_model:
        Identifier of the model that produced the stored vectors.
    timeout:
        Seconds allowed per backend call (``None`` = unbounded).
    max_attempts:
        Attempts per backend call before failing with :class:`StorageError`.
    backoff:
        Base of the exponential backoff between attempts, in seconds.
    """

    def __init__(
        self,
        collection_name: str,
        *,
        dimension: int,
        embedding_model: str = "",
        timeout: float | None = None,
        max_attempts: int = 1,
        backoff: float = 0.5,
    ) -> None:
        self.collection_name = collection_name
        self.dimension = dimension
        self.embedding_model = embedding_model
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff

    # -- public contract ------------------------------------------------------

    def insert(self, content: str, metadata: dict[str, Any], embedding: Sequence[float]) -> str:
        """Store one chunk and return its identifier.

        The identifier is assigned before the first attempt and backends
        write by it, so a retried insert never stores a second copy.

        Raises
        ------
        ConfigurationError
            When ``len(embedding)`` differs from :attr:`dimension`.
        StorageError
            When the backend fails; the chunk is never dropped silently.
        """
        self._check_dimension(embedding)
        chunk_id = uuid4().hex
        self._guard("insert", self._insert, chunk_id, content, dict(metadata), list(embedding))
        return chunk_id

    def search(
        self,
        query_embedding: Sequence[float],
        *,
        k: int = 10,
        filter: dict[str, Any] | None = None,
    ) -> list[SimilarityResult]:
        """Return at most *k* chunks, most similar first.

        Ties keep the order the backend returned them in, so identical
        queries against an unchanged index give identical rankings.
        """
        self._check_dimension(query_embedding)
        hits = self._guard("search", self._search, list(query_embedding), k, filter or {})
        ranked = sorted(hits, key=lambda hit: -hit.similarity)
        return ranked[:k]

    def count(self) -> int:
        """Total number of stored chunks."""
        return self._guard("count", self._count)

    def verify_compatibility(self) -> None:
        """Reject an index that was populated by a different embedding model.

        The default implementation accepts everything; persistent backends
        override it.
        """

    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        try:
            self.count()
            return True
        except StorageError:
            logger.warning("%s health-check failed", type(self).__name__, exc_info=True)
            return False

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def _insert(self, chunk_id: str, content: str, metadata: dict[str, Any], embedding: list[float]) -> None:
        """Persist one chunk under *chunk_id*; a repeated id is a no-op."""
        ...

    @abstractmethod
    def _search(
        self,
        query_embedding: list[float],
        k: int,
        filter: dict[str, Any],
    ) -> list[SimilarityResult]:
        """Return up to *k* results using cosine similarity (higher = closer)."""
        ...

    @abstractmethod
    def _count(self) -> int: ...

    # -- internals ------------------------------------------------------------

    def _check_dimension(self, embedding: Sequence[float]) -> None:
        if len(embedding) != self.dimension:
            raise ConfigurationError(
                f"Embedding has {len(embedding)} dimensions, "
                f"{self.collection_name!r} expects {self.dimension}"
            )

    def _guard(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        policy = retrying(self.max_attempts, backoff=self.backoff)
        try:
            return policy(call_with_timeout, fn, *args, timeout=self.timeout)
        except StorageError:
            raise
        except Exception as exc:
            logger.error("Vector store %s failed on %r: %s", operation, self.collection_name, exc)
            raise StorageError(f"Vector store {operation} failed: {exc}") from exc
