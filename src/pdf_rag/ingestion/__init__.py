"""
Ingestion — PDF loading, chunking, embedding and storage.

This module is responsible for the ETL-like pipeline that converts an
uploaded PDF into embedded chunks stored in the vector index.
"""

from pdf_rag.ingestion.chunker import CharacterWindowSplitter, chunk_documents
from pdf_rag.ingestion.embedder import EmbeddingGenerator, get_embedding_function
from pdf_rag.ingestion.loader import load_pdf_bytes
from pdf_rag.ingestion.pipeline import IngestionOrchestrator

__all__ = [
    "CharacterWindowSplitter",
    "EmbeddingGenerator",
    "IngestionOrchestrator",
    "chunk_documents",
    "get_embedding_function",
    "load_pdf_bytes",
]
