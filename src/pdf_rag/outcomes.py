"""Result variants returned by the two core operations.

``ingest`` yields :class:`Ingested`, :class:`IngestFailed` or
:class:`InvalidRequest`; ``answer`` yields :class:`Answered`,
:class:`NoRelevantDocuments`, :class:`Failed` or :class:`InvalidRequest`.
Each variant carries a ``status`` tag so callers can dispatch on it.
"""

from __future__ import annotations

import traceback
from typing import Literal

from pydantic import BaseModel, Field

from pdf_rag.errors import RAGError

NO_RELEVANT_DOCUMENTS_MESSAGE = (
    "No relevant documents found. Try asking a question related to your PDF content."
)


def _format_traceback(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


class InvalidRequest(BaseModel):
    """Caller input was rejected before the pipeline ran."""

    status: Literal["invalid"] = "invalid"
    message: str


class Ingested(BaseModel):
    """Every chunk of the document was embedded and stored."""

    status: Literal["ingested"] = "ingested"
    chunks_inserted: int
    chunk_ids: list[str] = Field(default_factory=list)


class IngestFailed(BaseModel):
    """Ingestion stopped at the first failing chunk.

    Chunks listed in ``inserted_chunk_ids`` stay in the index; the
    document should be treated as possibly partially applied.
    """

    status: Literal["ingest_failed"] = "ingest_failed"
    error: str
    error_type: str
    chunks_total: int
    chunks_inserted: int
    inserted_chunk_ids: list[str] = Field(default_factory=list)
    failed_chunk_index: int | None = None
    detail: str | None = None

    @classmethod
    def from_error(cls, exc: RAGError, **fields: object) -> IngestFailed:
        return cls(error=str(exc), error_type=exc.kind, detail=_format_traceback(exc), **fields)


class Answered(BaseModel):
    """An answer, generated or (``fallback=True``) built from the best match."""

    status: Literal["answered"] = "answered"
    answer: str
    sources_used: int
    fallback: bool = False


class NoRelevantDocuments(BaseModel):
    """The index returned nothing for the question; not a failure."""

    status: Literal["no_relevant_documents"] = "no_relevant_documents"
    message: str = NO_RELEVANT_DOCUMENTS_MESSAGE


class Failed(BaseModel):
    """A pipeline stage failed; ``error_type`` names the failing component."""

    status: Literal["failed"] = "failed"
    error: str
    error_type: str
    detail: str | None = None

    @classmethod
    def from_error(cls, exc: RAGError) -> Failed:
        return cls(error=str(exc), error_type=exc.kind, detail=_format_traceback(exc))


IngestOutcome = Ingested | IngestFailed | InvalidRequest
AnswerOutcome = Answered | NoRelevantDocuments | Failed | InvalidRequest
