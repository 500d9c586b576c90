"""Graph nodes — each method is one stage of the retrieval workflow.

Node contract
-------------
* Accepts the full :class:`QueryState` dict.
* Returns a *partial* dict with **only the keys that changed**.
* Component errors (:class:`~pdf_rag.errors.RAGError`) are caught at the
  stage that raised them and recorded as ``status="failed"``; routing
  functions then send the graph to ``END``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from langgraph.graph import END

from pdf_rag.answering.prompts import build_fallback_answer
from pdf_rag.answering.state import QueryState, StageRecord
from pdf_rag.errors import EmbeddingError, GenerationError, StorageError

if TYPE_CHECKING:
    from pdf_rag.answering.generator import AnswerGenerator
    from pdf_rag.ingestion.embedder import EmbeddingGenerator
    from pdf_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class QueryNodes:
    """Stage implementations bound to their (shared) collaborators.

    Parameters
    ----------
    embedder:
        The same :class:`EmbeddingGenerator` used at ingestion time.
    store:
        Vector index to search.
    generator:
        Produces the final answer from assembled context.
    fallback_max_chars:
        Length of the best match excerpt used by the fallback answer.
    """

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: VectorStoreBase,
        generator: AnswerGenerator,
        *,
        fallback_max_chars: int = 500,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._generator = generator
        self.fallback_max_chars = fallback_max_chars

    # ── 1. EMBED QUERY ────────────────────────────────────────────────

    def embed_query(self, state: QueryState) -> dict[str, Any]:
        """Embed the question with the ingestion-time model."""
        try:
            embedding = self._embedder.embed(state["question"])
        except EmbeddingError as exc:
            return _failed("embed_query", exc)

        logger.debug("Question embedded (%d dims): %s...", len(embedding), embedding[:5])
        return {
            "query_embedding": embedding,
            "trace": [StageRecord("embed_query", f"{len(embedding)}-dim embedding")],
        }

    # ── 2. SEARCH ─────────────────────────────────────────────────────

    def search(self, state: QueryState) -> dict[str, Any]:
        """Run the k-nearest-neighbour search.

        The stored-chunk count is logged first as a diagnostic; failing to
        obtain it does not stop the query.
        """
        index_size: int | None
        try:
            index_size = self._store.count()
            logger.info("Total chunks in index: %d", index_size)
        except StorageError as exc:
            logger.warning("Could not count indexed chunks: %s", exc)
            index_size = None

        try:
            raw = self._store.search(state["query_embedding"], k=state["k"])
        except StorageError as exc:
            return _failed("search", exc, index_size=index_size)

        logger.info("Search returned %d result(s)", len(raw))
        for rank, result in enumerate(raw, 1):
            logger.debug("  %d. %s", rank, result)

        return {
            "index_size": index_size,
            "raw_results": raw,
            "trace": [StageRecord("search", f"{len(raw)} result(s) of k={state['k']}")],
        }

    # ── 3. FILTER ─────────────────────────────────────────────────────

    def filter_results(self, state: QueryState) -> dict[str, Any]:
        """Keep results scoring strictly above the threshold.

        An empty raw result set ends the query as ``no_relevant_documents``.
        """
        raw = state.get("raw_results", [])
        threshold = state["threshold"]

        if not raw:
            logger.warning("No documents returned from search")
            return {
                "results": [],
                "status": "no_relevant_documents",
                "trace": [StageRecord("filter_results", "index returned nothing")],
            }

        kept = [result for result in raw if result.similarity > threshold]
        logger.info("After filtering (similarity > %s): %d result(s)", threshold, len(kept))
        return {
            "results": kept,
            "trace": [StageRecord("filter_results", f"{len(kept)}/{len(raw)} above {threshold}")],
        }

    # ── 4a. FALLBACK ──────────────────────────────────────────────────

    def fallback(self, state: QueryState) -> dict[str, Any]:
        """Answer from an excerpt of the best raw match; no model call."""
        best = state["raw_results"][0]
        logger.warning(
            "All results below threshold (best %.4f); answering from the top result",
            best.similarity,
        )
        return {
            "results": [best],
            "context": best.content,
            "answer": build_fallback_answer(best.content, self.fallback_max_chars),
            "sources_used": 1,
            "fallback": True,
            "status": "answered",
            "trace": [StageRecord("fallback", f"excerpt of {best.chunk.short_ref()}")],
        }

    # ── 4b. BUILD CONTEXT ─────────────────────────────────────────────

    def build_context(self, state: QueryState) -> dict[str, Any]:
        """Concatenate retained chunks in ranking order."""
        results = state["results"]
        context = "\n".join(result.content for result in results)
        return {
            "context": context,
            "trace": [StageRecord("build_context", f"{len(results)} chunk(s), {len(context)} chars")],
        }

    # ── 5. GENERATE ───────────────────────────────────────────────────

    def generate(self, state: QueryState) -> dict[str, Any]:
        """Ask the chat model for a grounded answer."""
        try:
            answer = self._generator.generate(state["context"], state["question"])
        except GenerationError as exc:
            return _failed("generate", exc)

        sources = len(state["results"])
        logger.info("Answer generated from %d source(s)", sources)
        return {
            "answer": answer,
            "sources_used": sources,
            "status": "answered",
            "trace": [StageRecord("generate", f"{len(answer)} chars")],
        }


# ── ROUTING (conditional edges) ───────────────────────────────────────


def route_after_embedding(state: QueryState) -> str:
    """``"search"`` unless the embedding stage failed."""
    return END if state.get("status") == "failed" else "search"


def route_after_search(state: QueryState) -> str:
    """``"filter_results"`` unless the search stage failed."""
    return END if state.get("status") == "failed" else "filter_results"


def route_after_filter(state: QueryState) -> str:
    """Pick the next stage from the filtering outcome.

    Returns
    -------
    str
        ``"build_context"`` when results cleared the threshold,
        ``"fallback"`` when only sub-threshold results exist,
        ``END`` when the index returned nothing.
    """
    if state.get("status") == "no_relevant_documents":
        return END
    if state.get("results"):
        return "build_context"
    return "fallback"


# ── Internal helpers ───────────────────────────────────────────────────


def _failed(stage: str, exc: Exception, **extra: Any) -> dict[str, Any]:
    logger.error("Stage %s failed: %s", stage, exc)
    return {
        "status": "failed",
        "error": exc,
        "trace": [StageRecord(stage, f"failed: {exc}")],
        **extra,
    }
