"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import json
import logging
from typing import Any

import chromadb

from pdf_rag.errors import ConfigurationError
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.models import Chunk, SimilarityResult

logger = logging.getLogger(__name__)


def _build_chroma_where(filter: dict[str, Any]) -> dict[str, Any] | None:
    """Convert an equality filter mapping to Chroma ``where`` syntax."""
    if not filter:
        return None

    clauses = [{key: {"$eq": value}} for key, value in filter.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    """Chroma metadata values must be flat str/int/float/bool."""
    flat: dict[str, str | int | float | bool] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, default=str)
    return flat


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store using cosine distance.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host / port:
        Chroma server address, used when *client* is not given.
    auth_token:
        Optional bearer token sent to the Chroma server.
    client:
        A ready ``chromadb`` client (e.g. ``chromadb.EphemeralClient()``).
    """

    def __init__(
        self,
        collection_name: str,
        *,
        dimension: int,
        embedding_model: str = "",
        host: str = "localhost",
        port: int = 8000,
        auth_token: str = "",
        client: Any | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(collection_name, dimension=dimension, embedding_model=embedding_model, **kwargs)
        if client is None:
            headers = {"Authorization": f"Bearer {auth_token}"} if auth_token else None
            client = chromadb.HttpClient(host=host, port=port, headers=headers)
        self._client = client
        self._collection = self._client.get_or_create_collection(
            collection_name,
            metadata={
                "hnsw:space": "cosine",
                "embedding_model": embedding_model or "unknown",
                "embedding_dim": dimension,
            },
        )

    # -- VectorStoreBase overrides --------------------------------------------

    def _insert(self, chunk_id: str, content: str, metadata: dict[str, Any], embedding: list[float]) -> None:
        flat = _flatten_metadata(metadata)
        self._collection.upsert(
            ids=[chunk_id],
            embeddings=[embedding],
            documents=[content],
            metadatas=[flat] if flat else None,
        )

    def _search(
        self,
        query_embedding: list[float],
        k: int,
        filter: dict[str, Any],
    ) -> list[SimilarityResult]:
        results = self._collection.query(
            query_embeddings=[query_embedding],
            n_results=k,
            where=_build_chroma_where(filter),
            include=["documents", "metadatas", "distances"],
        )

        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits: list[SimilarityResult] = []
        for chunk_id, content, meta, dist in zip(ids, docs, metas, distances):
            if not content:
                logger.warning("Skipping Chroma record %s with empty content", chunk_id)
                continue
            # cosine space: distance = 1 - cosine similarity
            chunk = Chunk(id=chunk_id, content=content, metadata=dict(meta or {}))
            hits.append(SimilarityResult(chunk=chunk, similarity=1.0 - float(dist)))
        return hits

    def _count(self) -> int:
        return self._collection.count()

    def verify_compatibility(self) -> None:
        meta = self._collection.metadata or {}
        stored_model = meta.get("embedding_model")
        if self.embedding_model and stored_model not in (None, "unknown", self.embedding_model):
            raise ConfigurationError(
                f"Collection {self.collection_name!r} was built with {stored_model!r}, "
                f"not {self.embedding_model!r}; clear it before switching models"
            )

        sample = self._guard("verify", self._sample_embeddings)
        embeddings = sample.get("embeddings")
        if embeddings is not None and len(embeddings) > 0 and len(embeddings[0]) != self.dimension:
            raise ConfigurationError(
                f"Collection {self.collection_name!r} stores {len(embeddings[0])}-dimensional "
                f"vectors, expected {self.dimension}"
            )

    def _sample_embeddings(self) -> dict[str, Any]:
        return self._collection.get(limit=1, include=["embeddings"])

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
