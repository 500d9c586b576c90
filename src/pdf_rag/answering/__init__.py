"""
Answering — the retrieval-augmented answer workflow built with LangGraph.

Public API
----------
- :class:`RetrievalOrchestrator` — embed, search, filter, answer.
- :func:`build_graph` — compile the workflow from bound stage nodes.
- :func:`create_initial_state` — bootstrap the state dict for ``graph.invoke()``.
- :class:`AnswerGenerator` — grounded chat completion.
- :class:`QueryState` — the TypedDict flowing through every node.
"""

from pdf_rag.answering.generator import AnswerGenerator
from pdf_rag.answering.graph import RetrievalOrchestrator, build_graph, create_initial_state
from pdf_rag.answering.state import QueryState, StageRecord

__all__ = [
    "AnswerGenerator",
    "QueryState",
    "RetrievalOrchestrator",
    "StageRecord",
    "build_graph",
    "create_initial_state",
]
