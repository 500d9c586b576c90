"""LLM initialisation — single place to swap providers.

Any OpenAI-compatible chat completions API works:

1. **Groq** (default) — ``LLM_BASE_URL=https://api.groq.com/openai/v1``
   with ``GROQ_API_KEY`` / ``LLM_API_KEY``.
2. **OpenAI cloud** — set ``LLM_BASE_URL`` to an empty string and provide
   ``OPENAI_API_KEY``.
3. **Self-hosted vLLM** — point ``LLM_BASE_URL`` at the server's ``/v1``.
"""

from __future__ import annotations

import logging

from langchain_openai import ChatOpenAI

from pdf_rag.config import Settings, settings

logger = logging.getLogger(__name__)


def get_llm(cfg: Settings = settings) -> ChatOpenAI:
    """Return the configured chat model.

    Sampling parameters are fixed per process (``llm_temperature``,
    ``llm_max_tokens``).  Client-side retries are disabled because
    :class:`~pdf_rag.answering.generator.AnswerGenerator` applies its own
    retry policy.
    """
    kwargs: dict = {
        "model": cfg.llm_model_name,
        "temperature": cfg.llm_temperature,
        "max_tokens": cfg.llm_max_tokens,
        "timeout": cfg.request_timeout_seconds,
        "max_retries": 0,
    }

    if cfg.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", cfg.llm_base_url)
        kwargs["base_url"] = cfg.llm_base_url
        # Local servers don't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = cfg.llm_api_key or "EMPTY"
    else:
        kwargs["api_key"] = cfg.llm_api_key

    return ChatOpenAI(**kwargs)
