"""
Serving — FastAPI application around the ingest and answer operations.

The HTTP layer only validates payloads and maps result variants to JSON
responses; all pipeline logic lives in :mod:`pdf_rag.service`.
"""
