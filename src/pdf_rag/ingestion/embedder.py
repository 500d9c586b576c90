"""Embedding generation with a fixed, process-wide model and dimension."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import TYPE_CHECKING

from pdf_rag.config import Settings, settings
from pdf_rag.errors import ConfigurationError, EmbeddingError
from pdf_rag.resilience import call_with_timeout, retrying

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(cfg: Settings = settings) -> Embeddings:
    """Return the configured LangChain embedding function.

    ``endpoint`` uses the hosted HuggingFace inference API (needs
    ``HUGGINGFACE_API_KEY``); ``local`` loads the sentence-transformer
    in-process with L2-normalised output.
    """
    if cfg.embedding_provider == "endpoint":
        from langchain_huggingface import HuggingFaceEndpointEmbeddings

        if not cfg.huggingface_api_key:
            raise ConfigurationError("HUGGINGFACE_API_KEY is required for the endpoint embedding provider")
        return HuggingFaceEndpointEmbeddings(
            model=cfg.embedding_model,
            task="feature-extraction",
            huggingfacehub_api_token=cfg.huggingface_api_key,
        )

    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=cfg.embedding_model,
        encode_kwargs={"normalize_embeddings": True},
    )


class EmbeddingGenerator:
    """Maps text to a vector of exactly :attr:`dimension` floats.

    The same instance embeds chunks at ingestion time and questions at
    query time, so stored and query vectors always come from one model.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.
    model_name:
        Identifier of the model behind *embeddings*.
    dimension:
        Expected vector length; any other length is an :class:`EmbeddingError`.
    timeout / max_attempts / backoff:
        Per-call limits, see :mod:`pdf_rag.resilience`.
    cache_size:
        Number of recent texts whose vectors are memoised (0 disables).
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        model_name: str,
        dimension: int,
        timeout: float | None = None,
        max_attempts: int = 1,
        backoff: float = 0.5,
        cache_size: int = 0,
    ) -> None:
        self._embeddings = embeddings
        self.model_name = model_name
        self.dimension = dimension
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.cache_size = cache_size
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._cache_lock = threading.Lock()

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> EmbeddingGenerator:
        return cls(
            get_embedding_function(cfg),
            model_name=cfg.embedding_model,
            dimension=cfg.embedding_dimension,
            timeout=cfg.request_timeout_seconds,
            max_attempts=cfg.max_attempts,
            backoff=cfg.retry_backoff_seconds,
            cache_size=cfg.embedding_cache_size,
        )

    def embed(self, text: str) -> list[float]:
        """Embed *text*.

        Raises
        ------
        EmbeddingError
            When the provider fails after all attempts, or returns a vector
            whose length is not :attr:`dimension`.
        """
        cached = self._cache_get(text)
        if cached is not None:
            return cached

        policy = retrying(self.max_attempts, backoff=self.backoff)
        try:
            vector = policy(call_with_timeout, self._embeddings.embed_query, text, timeout=self.timeout)
        except Exception as exc:
            logger.error("Embedding with %s failed: %s", self.model_name, exc)
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        vector = [float(x) for x in vector]
        if len(vector) != self.dimension:
            raise EmbeddingError(
                f"{self.model_name} returned {len(vector)} dimensions, expected {self.dimension}"
            )

        self._cache_put(text, vector)
        return vector

    # -- internals ------------------------------------------------------------

    def _cache_get(self, text: str) -> list[float] | None:
        if not self.cache_size:
            return None
        with self._cache_lock:
            vector = self._cache.get(text)
            if vector is not None:
                self._cache.move_to_end(text)
            return vector

    def _cache_put(self, text: str, vector: list[float]) -> None:
        if not self.cache_size:
            return
        with self._cache_lock:
            self._cache[text] = vector
            self._cache.move_to_end(text)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
