"""Request / response schemas for the HTTP boundary."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class AnswerRequest(BaseModel):
    """Incoming question from the user."""

    question: str | None = None


class AnswerResponse(BaseModel):
    """A generated (or fallback) answer."""

    success: Literal[True] = True
    answer: str
    sources_used: int


class IngestResponse(BaseModel):
    """Upload processed; every chunk stored."""

    success: Literal[True] = True
    chunks_inserted: int
    message: str = "PDF processed successfully"


class RejectedResponse(BaseModel):
    """Request understood but not actionable (bad input, nothing indexed)."""

    success: Literal[False] = False
    message: str


class ErrorResponse(BaseModel):
    """Internal failure; ``detail`` is only filled in development mode."""

    success: Literal[False] = False
    error: str
    chunks_inserted: int | None = None
    detail: str | None = None


class StatsResponse(BaseModel):
    documents: int
