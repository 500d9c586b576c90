"""Timeouts and bounded retries for calls to external services.

None of the upstream dependencies (embedding API, vector store, chat model)
is guaranteed to answer promptly, so every call goes through
:func:`call_with_timeout`, usually wrapped in a :func:`retrying` policy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, TypeVar

from tenacity import Retrying, before_sleep_log, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CALL_POOL = ThreadPoolExecutor(max_workers=32, thread_name_prefix="pdf-rag-call")


def call_with_timeout(fn: Callable[..., T], *args: Any, timeout: float | None = None, **kwargs: Any) -> T:
    """Run ``fn(*args, **kwargs)`` and give up after *timeout* seconds.

    ``timeout=None`` calls *fn* directly on the current thread.  On expiry a
    :class:`TimeoutError` is raised; the worker thread is abandoned, not
    interrupted.
    """
    if timeout is None:
        return fn(*args, **kwargs)

    future = _CALL_POOL.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        name = getattr(fn, "__qualname__", repr(fn))
        raise TimeoutError(f"{name} did not complete within {timeout:g}s") from None


def retrying(max_attempts: int = 3, *, backoff: float = 0.5, max_wait: float = 8.0) -> Retrying:
    """Return a tenacity policy: *max_attempts* tries, exponential backoff.

    The policy re-raises the last exception unchanged once attempts are
    exhausted so callers can wrap it in the matching pipeline error.

    Usage::

        policy = retrying(3)
        vector = policy(call_with_timeout, embeddings.embed_query, text, timeout=30)
    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff, max=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
