"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding
    huggingface_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("HUGGINGFACE_API_KEY", "HF_TOKEN"),
        description="Token for the HuggingFace inference API",
    )
    embedding_provider: Literal["endpoint", "local"] = Field(
        default="endpoint",
        description=(
            "'endpoint' calls the hosted HuggingFace inference API, "
            "'local' runs sentence-transformers in-process."
        ),
    )
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimension: int = Field(default=384, gt=0)
    embedding_cache_size: int = Field(default=0, ge=0, description="0 disables the embedding memo")

    # LLM
    llm_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("LLM_API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY"),
        description="API key for the OpenAI-compatible chat endpoint",
    )
    llm_model_name: str = Field(default="llama-3.3-70b-versatile", description="LLM model identifier")
    llm_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description=(
            "Base URL of an OpenAI-compatible chat completions API. "
            "Leave empty to use OpenAI cloud."
        ),
    )
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1024

    # Vector store
    vector_backend: Literal["memory", "chroma", "pgvector"] = "memory"
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "pdf_rag"
    chroma_auth_token: str = ""
    database_url: str = Field(
        default="",
        description="SQLAlchemy URL of a Postgres database with the pgvector extension",
    )
    pg_table: str = "documents"

    # Chunking / retrieval
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_top_k: int = Field(default=10, gt=0)
    similarity_threshold: float = 0.01
    fallback_max_chars: int = Field(default=500, gt=0)

    # Execution
    ingest_max_workers: int = Field(default=4, ge=1)
    request_timeout_seconds: float | None = 30.0
    max_attempts: int = Field(default=3, ge=1)
    retry_backoff_seconds: float = 0.5

    # Serving
    dev_mode: bool = Field(default=False, description="Include tracebacks in error responses")
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


# Shared instance; import `settings` wherever needed.
settings = Settings()
