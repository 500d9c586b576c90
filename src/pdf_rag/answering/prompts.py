"""Prompt templates for answer generation.

Keeping prompts in one place makes them easy to audit and version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

ANSWER_SYSTEM = (
    "You are a helpful assistant that answers questions based on the provided "
    "context from documents. If the context doesn't contain relevant "
    "information, say so politely."
)

ANSWER_USER_TEMPLATE = """\
Context from the document:
{context}

Question: {question}

Answer based on the context above:"""

FALLBACK_PREFIX = "Based on the document content: "


def build_answer_prompt(context: str, question: str) -> list[BaseMessage]:
    """Build the chat messages for one grounded answer."""
    return [
        SystemMessage(content=ANSWER_SYSTEM),
        HumanMessage(content=ANSWER_USER_TEMPLATE.format(context=context, question=question)),
    ]


def build_fallback_answer(content: str, max_chars: int = 500) -> str:
    """Answer built locally from the best match when nothing clears the threshold."""
    return f"{FALLBACK_PREFIX}{content[:max_chars]}..."
