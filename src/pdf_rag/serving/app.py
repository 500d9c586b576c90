"""FastAPI application exposing ingestion and question answering."""

from __future__ import annotations

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse

from pdf_rag.config import settings
from pdf_rag.errors import StorageError
from pdf_rag.outcomes import (
    Answered,
    Failed,
    IngestFailed,
    Ingested,
    InvalidRequest,
    NoRelevantDocuments,
)
from pdf_rag.service import RAGService, build_service
from pdf_rag.serving.schemas import (
    AnswerRequest,
    AnswerResponse,
    ErrorResponse,
    IngestResponse,
    RejectedResponse,
    StatsResponse,
)

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def create_app(service: RAGService | None = None, *, dev_mode: bool | None = None) -> FastAPI:
    """Build the API.

    When *service* is ``None`` it is constructed from settings during
    application start-up, so importing this module never opens network
    connections.
    """
    show_detail = settings.dev_mode if dev_mode is None else dev_mode

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.service is None:
            logging.basicConfig(level=settings.log_level)
            app.state.service = build_service(settings)
        yield

    app = FastAPI(
        title="PDF RAG API",
        version="0.1.0",
        description="Upload PDFs and ask questions answered from their content.",
        lifespan=lifespan,
    )
    app.state.service = service

    def _service(request: Request) -> RAGService:
        return request.app.state.service

    def _error(message: str, *, detail: str | None = None, chunks_inserted: int | None = None) -> JSONResponse:
        body = ErrorResponse(
            error=message,
            chunks_inserted=chunks_inserted,
            detail=detail if show_detail else None,
        )
        return JSONResponse(body.model_dump(exclude_none=True), status_code=500)

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.get("/ready")
    def ready(request: Request) -> JSONResponse:
        """Readiness probe; 503 while the vector index is unreachable."""
        if _service(request).ready():
            return JSONResponse({"status": "ready"})
        return JSONResponse({"status": "unavailable"}, status_code=503)

    @app.get("/stats", response_model=StatsResponse)
    def stats(request: Request) -> StatsResponse | JSONResponse:
        """Number of chunks currently indexed."""
        try:
            return StatsResponse(documents=_service(request).document_count())
        except StorageError as exc:
            return _error(str(exc))

    @app.post("/ingest")
    @app.post("/api/upload", include_in_schema=False)
    def ingest(request: Request, file: UploadFile | None = File(default=None)) -> JSONResponse:
        """Extract, chunk, embed and store an uploaded PDF."""
        if file is None:
            return JSONResponse(RejectedResponse(message="No file uploaded").model_dump())
        if file.content_type != PDF_CONTENT_TYPE:
            return JSONResponse(RejectedResponse(message="File is not a PDF").model_dump())

        try:
            outcome = _service(request).ingest(file.file.read(), filename=file.filename or "document.pdf")
        except Exception as exc:
            logger.exception("Upload error")
            return _error(str(exc) or type(exc).__name__, detail=traceback.format_exc())

        if isinstance(outcome, Ingested):
            return JSONResponse(IngestResponse(chunks_inserted=outcome.chunks_inserted).model_dump())
        if isinstance(outcome, InvalidRequest):
            return JSONResponse(RejectedResponse(message=outcome.message).model_dump())
        if isinstance(outcome, IngestFailed):
            return _error(outcome.error, detail=outcome.detail, chunks_inserted=outcome.chunks_inserted)
        raise TypeError(f"Unexpected ingest outcome: {outcome!r}")

    @app.post("/answer")
    @app.post("/api/chat", include_in_schema=False)
    def answer(request: Request, payload: AnswerRequest) -> JSONResponse:
        """Answer a question from the indexed documents."""
        try:
            outcome = _service(request).answer(payload.question)
        except Exception as exc:
            logger.exception("Chat error")
            return _error(str(exc) or type(exc).__name__, detail=traceback.format_exc())

        if isinstance(outcome, Answered):
            body = AnswerResponse(answer=outcome.answer, sources_used=outcome.sources_used)
            return JSONResponse(body.model_dump())
        if isinstance(outcome, (InvalidRequest, NoRelevantDocuments)):
            return JSONResponse(RejectedResponse(message=outcome.message).model_dump())
        if isinstance(outcome, Failed):
            return _error(outcome.error, detail=outcome.detail)
        raise TypeError(f"Unexpected answer outcome: {outcome!r}")

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn (``pdf-rag-serve``)."""
    import uvicorn

    uvicorn.run("pdf_rag.serving.app:app", host="0.0.0.0", port=8000)
