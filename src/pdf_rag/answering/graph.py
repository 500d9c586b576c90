"""LangGraph graph definition — the retrieval-augmented answer workflow.

This module wires the stages defined in :mod:`pdf_rag.answering.nodes`
into a compiled :class:`StateGraph`:

1. **Embed** the question.
2. **Search** the vector index for the top-k chunks.
3. **Filter** by similarity threshold and choose a path:
   context building, the local fallback answer, or "no relevant
   documents".
4. **Build context** from the retained chunks in ranking order.
5. **Generate** the answer with the chat model.

The graph is compiled once per :class:`RetrievalOrchestrator` and reused
for every request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from langgraph.graph import END, StateGraph

from pdf_rag.answering.nodes import (
    QueryNodes,
    route_after_embedding,
    route_after_filter,
    route_after_search,
)
from pdf_rag.answering.state import QueryState
from pdf_rag.errors import RAGError
from pdf_rag.outcomes import Answered, Failed, NoRelevantDocuments

if TYPE_CHECKING:
    from pdf_rag.answering.generator import AnswerGenerator
    from pdf_rag.ingestion.embedder import EmbeddingGenerator
    from pdf_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


def build_graph(nodes: QueryNodes) -> Any:
    """Construct and return the compiled retrieval graph.

    Graph topology::

        ┌─────────────┐
        │ embed_query │──── failed ────────────────┐
        └──────┬──────┘                            │
               ▼                                   │
        ┌─────────────┐                            │
        │   search    │──── failed ────────────────┤
        └──────┬──────┘                            │
               ▼                                   │
      ┌────────────────┐                           │
      │ filter_results │──── nothing found ────────┤
      └───┬────────┬───┘                           │
          │        │ all below threshold           │
          │        ▼                               │
          │   ┌──────────┐                         │
          │   │ fallback │─────────────────────────┤
          │   └──────────┘                         │
          ▼                                        │
      ┌───────────────┐                            │
      │ build_context │                            │
      └───────┬───────┘                            │
              ▼                                    │
        ┌──────────┐                               ▼
        │ generate │─────────────────────────► [ END ]
        └──────────┘

    Returns
    -------
    CompiledGraph
        A compiled LangGraph workflow ready for ``.invoke()``.
    """
    workflow = StateGraph(QueryState)

    # -- Nodes ---------------------------------------------------------------
    workflow.add_node("embed_query", nodes.embed_query)
    workflow.add_node("search", nodes.search)
    workflow.add_node("filter_results", nodes.filter_results)
    workflow.add_node("fallback", nodes.fallback)
    workflow.add_node("build_context", nodes.build_context)
    workflow.add_node("generate", nodes.generate)

    # -- Edges ---------------------------------------------------------------
    workflow.set_entry_point("embed_query")
    workflow.add_conditional_edges(
        "embed_query",
        route_after_embedding,
        {"search": "search", END: END},
    )
    workflow.add_conditional_edges(
        "search",
        route_after_search,
        {"filter_results": "filter_results", END: END},
    )
    workflow.add_conditional_edges(
        "filter_results",
        route_after_filter,
        {"build_context": "build_context", "fallback": "fallback", END: END},
    )
    workflow.add_edge("build_context", "generate")
    workflow.add_edge("generate", END)
    workflow.add_edge("fallback", END)

    return workflow.compile()


def create_initial_state(question: str, *, k: int = 10, threshold: float = 0.01) -> dict[str, Any]:
    """Build the initial state dict for ``graph.invoke()``."""
    return {
        "question": question,
        "k": k,
        "threshold": threshold,
        "query_embedding": [],
        "index_size": None,
        "raw_results": [],
        "results": [],
        "context": "",
        "answer": "",
        "sources_used": 0,
        "fallback": False,
        "status": "running",
        "error": None,
        "trace": [],
    }


class RetrievalOrchestrator:
    """Answer questions against the vector index.

    Parameters
    ----------
    embedder / store / generator:
        Shared collaborators, constructed once at start-up.
    top_k:
        Number of results requested from the index.
    similarity_threshold:
        Results must score strictly above this value.
    fallback_max_chars:
        Excerpt length for the below-threshold fallback answer.
    """

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: VectorStoreBase,
        generator: AnswerGenerator,
        *,
        top_k: int = 10,
        similarity_threshold: float = 0.01,
        fallback_max_chars: int = 500,
    ) -> None:
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold
        nodes = QueryNodes(embedder, store, generator, fallback_max_chars=fallback_max_chars)
        self._graph = build_graph(nodes)

    def run(self, question: str) -> dict[str, Any]:
        """Execute the graph and return the final :class:`QueryState`."""
        state = create_initial_state(question, k=self.top_k, threshold=self.similarity_threshold)
        return self._graph.invoke(state)

    def answer(self, question: str) -> Answered | NoRelevantDocuments | Failed:
        """Run the workflow and convert its terminal state to a result variant."""
        final = self.run(question)
        status = final.get("status")

        if status == "answered":
            return Answered(
                answer=final["answer"],
                sources_used=final["sources_used"],
                fallback=final.get("fallback", False),
            )
        if status == "no_relevant_documents":
            return NoRelevantDocuments()

        error = final.get("error")
        if isinstance(error, RAGError):
            return Failed.from_error(error)
        raise RuntimeError(f"Retrieval graph ended in unexpected status {status!r}")
