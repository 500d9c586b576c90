"""Document loaders — turn uploaded PDF bytes into LangChain documents."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_community.document_loaders import PyPDFLoader

from pdf_rag.errors import ValidationError

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


def looks_like_pdf(data: bytes) -> bool:
    """Cheap header check; the header may follow up to 1 KiB of junk."""
    return PDF_MAGIC in data[:1024]


def load_pdf(path: str | Path) -> list[Document]:
    """Load a single PDF file, one document per page."""
    return PyPDFLoader(str(path)).load()


def load_pdf_bytes(data: bytes, *, source: str = "document.pdf") -> list[Document]:
    """Extract per-page text from an uploaded PDF.

    Parameters
    ----------
    data:
        Raw bytes of the uploaded file.
    source:
        Name recorded as ``metadata["source"]`` on every page.

    Returns
    -------
    list[Document]
        Pages with non-blank text, in page order.

    Raises
    ------
    ValidationError
        If *data* is empty, not a PDF, unreadable, or has no extractable text.
    """
    if not data:
        raise ValidationError("No file uploaded")
    if not looks_like_pdf(data):
        raise ValidationError("File is not a PDF")

    with tempfile.TemporaryDirectory(prefix="pdf-rag-") as tmp:
        path = Path(tmp) / "upload.pdf"
        path.write_bytes(data)
        try:
            pages = load_pdf(path)
        except Exception as exc:
            raise ValidationError(f"Could not read PDF: {exc}") from exc

    documents = [page for page in pages if page.page_content.strip()]
    for page in documents:
        page.metadata["source"] = source

    if not documents:
        raise ValidationError("PDF contains no extractable text")

    logger.info("Loaded %d page(s) with text from %s (%d total)", len(documents), source, len(pages))
    return documents
