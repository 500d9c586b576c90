"""Unit tests for the embedding generator."""

from __future__ import annotations

import time
from unittest.mock import MagicMock

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from pdf_rag.config import Settings
from pdf_rag.errors import ConfigurationError, EmbeddingError
from pdf_rag.ingestion.embedder import EmbeddingGenerator, get_embedding_function


def _mock_embeddings(*results: object) -> MagicMock:
    embeddings = MagicMock()
    embeddings.embed_query.side_effect = list(results)
    return embeddings


class TestEmbeddingGenerator:
    def test_returns_vector_of_configured_dimension(self, embedder: EmbeddingGenerator) -> None:
        vector = embedder.embed("What is in the report?")
        assert len(vector) == 384
        assert all(isinstance(x, float) for x in vector)

    def test_same_text_same_vector(self, embedder: EmbeddingGenerator) -> None:
        assert embedder.embed("hello") == embedder.embed("hello")

    def test_dimension_mismatch_is_embedding_error(self) -> None:
        generator = EmbeddingGenerator(DeterministicFakeEmbedding(size=768), model_name="big", dimension=384)
        with pytest.raises(EmbeddingError, match="768 dimensions, expected 384"):
            generator.embed("text")

    def test_provider_failure_is_embedding_error(self) -> None:
        generator = EmbeddingGenerator(
            _mock_embeddings(ConnectionError("HF down")), model_name="m", dimension=3
        )
        with pytest.raises(EmbeddingError, match="HF down") as info:
            generator.embed("text")
        assert isinstance(info.value.__cause__, ConnectionError)

    def test_transient_failure_is_retried(self) -> None:
        embeddings = _mock_embeddings(ConnectionError("blip"), [0.1, 0.2, 0.3])
        generator = EmbeddingGenerator(embeddings, model_name="m", dimension=3, max_attempts=2, backoff=0)
        assert generator.embed("text") == [0.1, 0.2, 0.3]
        assert embeddings.embed_query.call_count == 2

    def test_attempts_are_bounded(self) -> None:
        embeddings = _mock_embeddings(*(ConnectionError("down") for _ in range(5)))
        generator = EmbeddingGenerator(embeddings, model_name="m", dimension=3, max_attempts=3, backoff=0)
        with pytest.raises(EmbeddingError):
            generator.embed("text")
        assert embeddings.embed_query.call_count == 3

    def test_timeout_is_embedding_error(self) -> None:
        embeddings = MagicMock()
        embeddings.embed_query.side_effect = lambda text: time.sleep(1) or [0.0, 0.0, 0.0]
        generator = EmbeddingGenerator(embeddings, model_name="m", dimension=3, timeout=0.05)
        with pytest.raises(EmbeddingError, match="did not complete"):
            generator.embed("slow")

    def test_cache_deduplicates_identical_text(self) -> None:
        embeddings = MagicMock()
        embeddings.embed_query.return_value = [1.0, 0.0, 0.0]
        generator = EmbeddingGenerator(embeddings, model_name="m", dimension=3, cache_size=2)
        generator.embed("a")
        generator.embed("a")
        generator.embed("b")
        generator.embed("c")
        generator.embed("a")
        assert embeddings.embed_query.call_count == 4


class TestGetEmbeddingFunction:
    def test_endpoint_provider_requires_token(self) -> None:
        cfg = Settings(embedding_provider="endpoint", huggingface_api_key="")
        with pytest.raises(ConfigurationError, match="HUGGINGFACE_API_KEY"):
            get_embedding_function(cfg)
