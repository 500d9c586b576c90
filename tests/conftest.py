"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.messages import AIMessage

from pdf_rag.answering.generator import AnswerGenerator
from pdf_rag.errors import StorageError
from pdf_rag.ingestion.embedder import EmbeddingGenerator
from pdf_rag.retrieval.base import VectorStoreBase
from pdf_rag.retrieval.memory_store import InMemoryVectorStore
from pdf_rag.retrieval.models import Chunk, SimilarityResult

DIM = 384


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fake vector store for deterministic testing ─────────────────────────


class ScriptedVectorStore(VectorStoreBase):
    """In-memory fake that returns canned ``(content, similarity)`` hits."""

    def __init__(
        self,
        hits: list[tuple[str, float]] | None = None,
        *,
        fail_search: bool = False,
        fail_count: bool = False,
    ) -> None:
        super().__init__("scripted", dimension=DIM)
        self._hits = [
            SimilarityResult(
                chunk=Chunk(id=f"c{i}", content=content, metadata={"source": "doc.pdf", "chunk_index": i}),
                similarity=score,
            )
            for i, (content, score) in enumerate(hits or [])
        ]
        self.fail_search = fail_search
        self.fail_count = fail_count
        self.search_calls = 0

    def _insert(self, chunk_id: str, content: str, metadata: dict[str, Any], embedding: list[float]) -> None:
        raise NotImplementedError

    def _search(self, query_embedding: list[float], k: int, filter: dict[str, Any]) -> list[SimilarityResult]:
        self.search_calls += 1
        if self.fail_search:
            raise StorageError("match_documents failed")
        return self._hits[:k]

    def _count(self) -> int:
        if self.fail_count:
            raise RuntimeError("count unavailable")
        return len(self._hits)


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def fake_embeddings() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=DIM)


@pytest.fixture()
def embedder(fake_embeddings: DeterministicFakeEmbedding) -> EmbeddingGenerator:
    return EmbeddingGenerator(fake_embeddings, model_name="fake-minilm", dimension=DIM)


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(dimension=DIM, embedding_model="fake-minilm")


@pytest.fixture()
def chat_llm() -> MagicMock:
    """Chat model stub answering every prompt with the same text."""
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content="Generated answer.")
    return llm


@pytest.fixture()
def generator(chat_llm: MagicMock) -> AnswerGenerator:
    return AnswerGenerator(chat_llm)


@pytest.fixture()
def make_store() -> Callable[..., ScriptedVectorStore]:
    """Factory for :class:`ScriptedVectorStore` instances."""
    return ScriptedVectorStore
