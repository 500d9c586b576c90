"""Answer generator — one grounded chat completion per question."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pdf_rag.answering.prompts import build_answer_prompt
from pdf_rag.errors import GenerationError
from pdf_rag.resilience import call_with_timeout, retrying

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)

NO_ANSWER_PLACEHOLDER = "No answer generated"


def _message_text(content: Any) -> str:
    """Flatten a chat message ``content`` (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return ""


class AnswerGenerator:
    """Ask a chat model to answer *question* from *context*.

    Parameters
    ----------
    llm:
        Chat model with its sampling parameters already configured
        (see :func:`pdf_rag.answering.llm.get_llm`).
    timeout / max_attempts / backoff:
        Per-call limits, see :mod:`pdf_rag.resilience`.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        *,
        timeout: float | None = None,
        max_attempts: int = 1,
        backoff: float = 0.5,
    ) -> None:
        self._llm = llm
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = backoff

    def generate(self, context: str, question: str) -> str:
        """Return the model's answer, or a placeholder if it returned nothing.

        Raises
        ------
        GenerationError
            When the model call fails after all attempts.
        """
        messages = build_answer_prompt(context, question)
        policy = retrying(self.max_attempts, backoff=self.backoff)
        try:
            response = policy(call_with_timeout, self._llm.invoke, messages, timeout=self.timeout)
        except Exception as exc:
            logger.error("Answer generation failed: %s", exc)
            raise GenerationError(f"Answer generation failed: {exc}") from exc

        answer = _message_text(response.content)
        if not answer.strip():
            logger.warning("Model returned an empty completion")
            return NO_ANSWER_PLACEHOLDER
        return answer
