"""Query state definition — shared across all graph nodes.

The state is the *single source of truth* that flows through every node
of the retrieval graph.  Stage failures are recorded here (``status`` /
``error``) rather than raised, so the graph always runs to a terminal
state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, TypedDict

from pdf_rag.errors import RAGError
from pdf_rag.retrieval.models import SimilarityResult

QueryStatus = Literal["running", "answered", "no_relevant_documents", "failed"]


@dataclass
class StageRecord:
    """One completed stage of a query.

    Attributes
    ----------
    stage:
        The graph node that produced this record (e.g. ``"search"``).
    outcome:
        Short, human-readable summary of what happened.
    """

    stage: str
    outcome: str


def _append_list(existing: list[Any], new: list[Any]) -> list[Any]:
    """Reducer that appends *new* items to the *existing* list."""
    return existing + new


class QueryState(TypedDict):
    """Typed state that flows through the retrieval graph.

    Attributes
    ----------
    question:
        The user's question (validated non-empty before the graph runs).
    k:
        Maximum number of results requested from the vector index.
    threshold:
        Results must score strictly above this to be kept.
    query_embedding:
        Vector for ``question``; set by ``embed_query``.
    index_size:
        Stored chunk count observed before searching (``None`` if the
        diagnostic failed).
    raw_results:
        Ranked results exactly as returned by the vector index.
    results:
        Results retained for context building.
    context:
        Newline-joined content of ``results``.
    answer:
        Final answer text.
    sources_used:
        Number of chunks that contributed to ``answer``.
    fallback:
        ``True`` when the answer was built locally from the best match.
    status:
        ``"running"`` until a terminal state is reached.
    error:
        The component error that ended the query, if any.
    trace:
        Ordered :class:`StageRecord` log of the stages that ran.
    """

    question: str
    k: int
    threshold: float
    query_embedding: list[float]
    index_size: int | None
    raw_results: list[SimilarityResult]
    results: list[SimilarityResult]
    context: str
    answer: str
    sources_used: int
    fallback: bool
    status: QueryStatus
    error: RAGError | None
    trace: Annotated[list[StageRecord], _append_list]
