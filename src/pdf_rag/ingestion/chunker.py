"""Text chunking strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langchain_core.documents import Document
from langchain_text_splitters import TextSplitter

from pdf_rag.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable


class CharacterWindowSplitter(TextSplitter):
    """Fixed-size character windows advancing by ``chunk_size - chunk_overlap``.

    Unlike LangChain's recursive splitter this ignores sentence and
    paragraph boundaries, so the output is fully determined by the text
    length: every chunk but the last is exactly ``chunk_size`` characters
    and consecutive chunks share exactly ``chunk_overlap`` characters.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200, **kwargs: Any) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ConfigurationError(f"chunk_overlap must not be negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ConfigurationError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)

    @property
    def step(self) -> int:
        return self._chunk_size - self._chunk_overlap

    def split_text(self, text: str) -> list[str]:
        return [piece for _, piece in self.windows(text)]

    def windows(self, text: str) -> Iterable[tuple[int, str]]:
        """Yield ``(start_offset, window)`` pairs; nothing for empty text."""
        start = 0
        while start < len(text):
            yield start, text[start : start + self._chunk_size]
            if start + self._chunk_size >= len(text):
                break
            start += self.step


def chunk_documents(
    documents: list[Document],
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
) -> list[Document]:
    """Split *documents* into overlapping windows for embedding.

    Parameters
    ----------
    documents:
        Source documents produced by a loader (one per PDF page).
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of characters shared by consecutive chunks.

    Returns
    -------
    list[Document]
        Chunks carrying the source metadata plus ``chunk_index`` (position
        across all *documents*) and ``start_index`` (offset within the page).
    """
    splitter = CharacterWindowSplitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    chunks: list[Document] = []
    for doc in documents:
        for start, piece in splitter.windows(doc.page_content):
            metadata = {**doc.metadata, "chunk_index": len(chunks), "start_index": start}
            chunks.append(Document(page_content=piece, metadata=metadata))
    return chunks
