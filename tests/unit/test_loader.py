"""Unit tests for PDF loading and upload validation."""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from langchain_core.documents import Document
from pypdf import PdfWriter

from pdf_rag.errors import ValidationError
from pdf_rag.ingestion.loader import load_pdf_bytes, looks_like_pdf


def _blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestLoadPdfBytes:
    def test_empty_upload_rejected(self) -> None:
        with pytest.raises(ValidationError, match="No file uploaded"):
            load_pdf_bytes(b"")

    def test_non_pdf_rejected(self) -> None:
        with pytest.raises(ValidationError, match="not a PDF"):
            load_pdf_bytes(b"PK\x03\x04 definitely a zip file")

    def test_pdf_without_text_rejected(self) -> None:
        with pytest.raises(ValidationError, match="no extractable text"):
            load_pdf_bytes(_blank_pdf())

    def test_corrupt_pdf_rejected(self) -> None:
        with patch("pdf_rag.ingestion.loader.PyPDFLoader") as loader_cls:
            loader_cls.return_value.load.side_effect = ValueError("broken xref table")
            with pytest.raises(ValidationError, match="Could not read PDF"):
                load_pdf_bytes(b"%PDF-1.7 garbage")

    def test_pages_get_upload_name_and_blank_pages_dropped(self) -> None:
        pages = [
            Document(page_content="First page text", metadata={"source": "/tmp/x/upload.pdf", "page": 0}),
            Document(page_content="   \n", metadata={"source": "/tmp/x/upload.pdf", "page": 1}),
            Document(page_content="Third page text", metadata={"source": "/tmp/x/upload.pdf", "page": 2}),
        ]
        with patch("pdf_rag.ingestion.loader.PyPDFLoader") as loader_cls:
            loader_cls.return_value.load.return_value = pages
            docs = load_pdf_bytes(b"%PDF-1.4 ...", source="report.pdf")

        assert [d.metadata["page"] for d in docs] == [0, 2]
        assert all(d.metadata["source"] == "report.pdf" for d in docs)


def test_looks_like_pdf() -> None:
    assert looks_like_pdf(b"%PDF-1.4\n...")
    assert looks_like_pdf(b"\x00\x00junk%PDF-1.7")
    assert not looks_like_pdf(b"<html></html>")
