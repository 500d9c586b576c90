"""Error taxonomy shared by every pipeline component.

Components raise these; the orchestrators turn them into result variants
(see :mod:`pdf_rag.outcomes`) so the HTTP layer never has to inspect
provider-specific exceptions.
"""

from __future__ import annotations


class RAGError(Exception):
    """Base class for all pipeline errors."""

    kind: str = "internal"


class ConfigurationError(RAGError):
    """Invalid parameters or an index that does not match the embedding model."""

    kind = "configuration"


class ValidationError(RAGError):
    """Caller input rejected before it reaches the pipeline."""

    kind = "validation"


class EmbeddingError(RAGError):
    """Embedding provider unreachable, failed, or returned a bad vector."""

    kind = "embedding"


class StorageError(RAGError):
    """Vector index insert/search/count failed."""

    kind = "storage"


class GenerationError(RAGError):
    """Generative model call failed."""

    kind = "generation"
