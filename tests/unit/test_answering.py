"""Unit tests for the retrieval-augmented answer workflow.

All tests run **without** HuggingFace, Chroma, Postgres or an LLM API by
injecting lightweight fakes / mocks.  The suite validates:

- Prompt construction
- Answer generation (placeholder, error mapping, retries)
- Individual node logic and conditional routing
- End-to-end graph runs: answered, fallback, empty index, failures
- Threshold and idempotence properties
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from langchain_core.documents import Document
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langgraph.graph import END

from pdf_rag.answering.generator import NO_ANSWER_PLACEHOLDER, AnswerGenerator
from pdf_rag.answering.graph import RetrievalOrchestrator, create_initial_state
from pdf_rag.answering.nodes import (
    QueryNodes,
    route_after_embedding,
    route_after_filter,
    route_after_search,
)
from pdf_rag.answering.prompts import build_answer_prompt, build_fallback_answer
from pdf_rag.errors import GenerationError
from pdf_rag.ingestion.embedder import EmbeddingGenerator
from pdf_rag.ingestion.pipeline import IngestionOrchestrator
from pdf_rag.outcomes import (
    NO_RELEVANT_DOCUMENTS_MESSAGE,
    Answered,
    Failed,
    NoRelevantDocuments,
)
from pdf_rag.retrieval.memory_store import InMemoryVectorStore

# ── Fixtures & helpers ─────────────────────────────────────────────────


def _orchestrator(
    embedder: EmbeddingGenerator,
    store: Any,
    generator: AnswerGenerator,
    **kwargs: Any,
) -> RetrievalOrchestrator:
    return RetrievalOrchestrator(embedder, store, generator, **kwargs)


def _user_message(chat_llm: MagicMock) -> str:
    messages = chat_llm.invoke.call_args.args[0]
    return messages[1].content


# ═══════════════════════════════════════════════════════════════════════
# Prompts
# ═══════════════════════════════════════════════════════════════════════


class TestPrompts:
    def test_answer_prompt_structure(self) -> None:
        messages = build_answer_prompt("chunk one\nchunk two", "What is it?")
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert "say so politely" in messages[0].content
        assert messages[1].content == (
            "Context from the document:\nchunk one\nchunk two\n\n"
            "Question: What is it?\n\nAnswer based on the context above:"
        )

    def test_fallback_answer_truncates(self) -> None:
        answer = build_fallback_answer("x" * 800)
        assert answer == "Based on the document content: " + "x" * 500 + "..."

    def test_fallback_answer_short_content(self) -> None:
        assert build_fallback_answer("tiny") == "Based on the document content: tiny..."


# ═══════════════════════════════════════════════════════════════════════
# Answer generator
# ═══════════════════════════════════════════════════════════════════════


class TestAnswerGenerator:
    def test_returns_model_completion(self, chat_llm: MagicMock) -> None:
        assert AnswerGenerator(chat_llm).generate("ctx", "q?") == "Generated answer."
        chat_llm.invoke.assert_called_once()

    def test_empty_completion_gives_placeholder(self, chat_llm: MagicMock) -> None:
        chat_llm.invoke.return_value = AIMessage(content="")
        assert AnswerGenerator(chat_llm).generate("ctx", "q?") == NO_ANSWER_PLACEHOLDER

    def test_content_blocks_are_flattened(self, chat_llm: MagicMock) -> None:
        chat_llm.invoke.return_value = AIMessage(content=[{"type": "text", "text": "Block answer"}])
        assert AnswerGenerator(chat_llm).generate("ctx", "q?") == "Block answer"

    def test_upstream_failure_is_generation_error(self, chat_llm: MagicMock) -> None:
        chat_llm.invoke.side_effect = RuntimeError("rate limited")
        with pytest.raises(GenerationError, match="rate limited"):
            AnswerGenerator(chat_llm).generate("ctx", "q?")

    def test_retries_then_succeeds(self, chat_llm: MagicMock) -> None:
        chat_llm.invoke.side_effect = [RuntimeError("502"), AIMessage(content="ok")]
        assert AnswerGenerator(chat_llm, max_attempts=3, backoff=0).generate("ctx", "q?") == "ok"
        assert chat_llm.invoke.call_count == 2

    def test_works_with_fake_chat_model(self) -> None:
        llm = FakeListChatModel(responses=["From the fake model."])
        assert AnswerGenerator(llm).generate("ctx", "q?") == "From the fake model."


# ═══════════════════════════════════════════════════════════════════════
# Routing
# ═══════════════════════════════════════════════════════════════════════


class TestRouting:
    def test_failed_embedding_ends(self) -> None:
        assert route_after_embedding({"status": "failed"}) == END
        assert route_after_embedding({"status": "running"}) == "search"

    def test_failed_search_ends(self) -> None:
        assert route_after_search({"status": "failed"}) == END
        assert route_after_search({"status": "running"}) == "filter_results"

    def test_filter_routes(self) -> None:
        assert route_after_filter({"status": "no_relevant_documents", "results": []}) == END
        assert route_after_filter({"status": "running", "results": ["hit"]}) == "build_context"
        assert route_after_filter({"status": "running", "results": []}) == "fallback"


# ═══════════════════════════════════════════════════════════════════════
# Nodes
# ═══════════════════════════════════════════════════════════════════════


class TestNodes:
    def test_filter_is_strictly_above_threshold(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([("a", 0.5), ("b", 0.01), ("c", 0.2), ("d", 0.005)])
        nodes = QueryNodes(embedder, store, generator)
        state = create_initial_state("q", threshold=0.01)
        state["raw_results"] = store.search([0.0] * 384)

        update = nodes.filter_results(state)

        assert [r.content for r in update["results"]] == ["a", "c"]

    def test_count_failure_is_not_fatal(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([("a", 0.5)], fail_count=True)
        nodes = QueryNodes(embedder, store, generator)
        state = create_initial_state("q")
        state["query_embedding"] = [0.0] * 384

        update = nodes.search(state)

        assert update["index_size"] is None
        assert len(update["raw_results"]) == 1
        assert "status" not in update

    def test_build_context_joins_in_rank_order(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([("first", 0.9), ("second", 0.8)])
        nodes = QueryNodes(embedder, store, generator)
        state = create_initial_state("q")
        state["results"] = store.search([0.0] * 384)
        assert nodes.build_context(state)["context"] == "first\nsecond"


# ═══════════════════════════════════════════════════════════════════════
# End-to-end graph
# ═══════════════════════════════════════════════════════════════════════


class TestRetrievalOrchestrator:
    def test_scenario_single_relevant_result(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        chat_llm: MagicMock,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([("Revenue grew 12% in 2023.", 0.87)])

        outcome = _orchestrator(embedder, store, generator).answer("How much did revenue grow?")

        assert outcome == Answered(answer="Generated answer.", sources_used=1)
        assert "Context from the document:\nRevenue grew 12% in 2023.\n\n" in _user_message(chat_llm)
        assert "Question: How much did revenue grow?" in _user_message(chat_llm)

    def test_scenario_fallback_when_all_below_threshold(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        chat_llm: MagicMock,
        make_store: Callable[..., Any],
    ) -> None:
        top = "T" * 700
        store = make_store([(top, 0.003), ("other", 0.002)])

        outcome = _orchestrator(embedder, store, generator).answer("anything?")

        assert isinstance(outcome, Answered)
        assert outcome.sources_used == 1
        assert outcome.fallback is True
        assert outcome.answer.startswith("Based on the document content:")
        assert outcome.answer == "Based on the document content: " + "T" * 500 + "..."
        chat_llm.invoke.assert_not_called()

    def test_empty_index_gives_no_relevant_documents(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        chat_llm: MagicMock,
        memory_store: InMemoryVectorStore,
    ) -> None:
        assert memory_store.count() == 0

        outcome = _orchestrator(embedder, memory_store, generator).answer("Is anything there?")

        assert outcome == NoRelevantDocuments()
        assert outcome.message == NO_RELEVANT_DOCUMENTS_MESSAGE
        chat_llm.invoke.assert_not_called()

    def test_threshold_law_keeps_exactly_the_subset_above(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([("a", 0.9), ("b", 0.4), ("c", 0.3), ("d", 0.29), ("e", 0.1)])
        orchestrator = _orchestrator(embedder, store, generator, similarity_threshold=0.29)

        final = orchestrator.run("q")

        assert [r.content for r in final["results"]] == ["a", "b", "c"]
        assert final["context"] == "a\nb\nc"
        assert final["sources_used"] == 3

    def test_k_is_forwarded(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([(f"chunk {i}", 0.9 - i * 0.01) for i in range(15)])
        final = _orchestrator(embedder, store, generator).run("q")
        assert len(final["raw_results"]) == 10
        assert final["sources_used"] == 10

    def test_embedding_failure_is_failed_outcome(
        self,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        embeddings = MagicMock()
        embeddings.embed_query.side_effect = ConnectionError("HF unreachable")
        embedder = EmbeddingGenerator(embeddings, model_name="m", dimension=384)
        store = make_store([("a", 0.9)])

        outcome = _orchestrator(embedder, store, generator).answer("q")

        assert isinstance(outcome, Failed)
        assert outcome.error_type == "embedding"
        assert "HF unreachable" in outcome.error
        assert store.search_calls == 0

    def test_search_failure_is_failed_outcome(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        chat_llm: MagicMock,
        make_store: Callable[..., Any],
    ) -> None:
        store = make_store([("a", 0.9)], fail_search=True)

        outcome = _orchestrator(embedder, store, generator).answer("q")

        assert isinstance(outcome, Failed)
        assert outcome.error_type == "storage"
        chat_llm.invoke.assert_not_called()

    def test_generation_failure_is_failed_outcome(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        chat_llm: MagicMock,
        make_store: Callable[..., Any],
    ) -> None:
        chat_llm.invoke.side_effect = RuntimeError("model overloaded")
        store = make_store([("a", 0.9)])

        outcome = _orchestrator(embedder, store, generator).answer("q")

        assert isinstance(outcome, Failed)
        assert outcome.error_type == "generation"
        assert outcome.detail is not None

    def test_trace_records_each_stage(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        make_store: Callable[..., Any],
    ) -> None:
        final = _orchestrator(embedder, make_store([("a", 0.9)]), generator).run("q")
        assert [step.stage for step in final["trace"]] == [
            "embed_query",
            "search",
            "filter_results",
            "build_context",
            "generate",
        ]
        assert final["index_size"] == 1

    def test_end_to_end_with_memory_store_is_idempotent(
        self,
        embedder: EmbeddingGenerator,
        generator: AnswerGenerator,
        memory_store: InMemoryVectorStore,
    ) -> None:
        text = "".join(chr(ord("a") + (i % 26)) for i in range(3000))
        IngestionOrchestrator(embedder, memory_store).ingest([Document(page_content=text, metadata={"source": "x.pdf"})])
        orchestrator = _orchestrator(embedder, memory_store, generator, similarity_threshold=-1.0)

        first = orchestrator.run("What does the document say?")
        second = orchestrator.run("What does the document say?")

        ranked = [(r.chunk.id, r.similarity) for r in first["raw_results"]]
        assert ranked == [(r.chunk.id, r.similarity) for r in second["raw_results"]]
        assert len(ranked) == memory_store.count() == 4
        scores = [score for _, score in ranked]
        assert scores == sorted(scores, reverse=True)
        assert first["status"] == "answered"
