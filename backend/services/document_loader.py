"""Document loading service for PDF and plain-text uploads."""
import logging
import os
import fitz  # PyMuPDF

from models.document import ExtractedText
from services.chunking_engine import PAGE_BREAK

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".txt")


class UnsupportedFileTypeError(ValueError):
    """Upload is neither a PDF nor a text file."""


class DocumentLoader:
    """Extracts text from uploaded PDF and TXT files."""

    def extract(self, file_name: str, data: bytes) -> ExtractedText:
        """
        Extract text from an uploaded file.

        Args:
            file_name: Original file name (extension selects the parser)
            data: Raw file bytes

        Returns:
            ExtractedText with page-break markers for PDFs

        Raises:
            UnsupportedFileTypeError: For extensions other than .pdf/.txt
        """
        extension = os.path.splitext(file_name)[1].lower()
        if extension == ".pdf":
            return self._extract_pdf(file_name, data)
        if extension == ".txt":
            return ExtractedText(
                file_name=file_name,
                text=data.decode("utf-8", errors="replace"),
                num_pages=1,
                is_paginated=False
            )
        raise UnsupportedFileTypeError(
            f"Unsupported file type for {file_name}. Use PDF or TXT."
        )

    def _extract_pdf(self, file_name: str, data: bytes) -> ExtractedText:
        """
        Extract text page-by-page and join pages with form feeds.
        """
        pdf_document = fitz.open(stream=data, filetype="pdf")
        try:
            page_texts = [page.get_text() for page in pdf_document]
        finally:
            pdf_document.close()

        logger.info(f"Extracted {file_name}: {len(page_texts)} pages")
        return ExtractedText(
            file_name=file_name,
            text=PAGE_BREAK.join(page_texts),
            num_pages=len(page_texts) or 1,
            is_paginated=True
        )
