"""Unit tests for DocumentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import fitz
import pytest
from services.chunking_engine import PAGE_BREAK
from services.document_loader import DocumentLoader, UnsupportedFileTypeError


def build_pdf(page_texts):
    document = fitz.open()
    for text in page_texts:
        page = document.new_page()
        page.insert_text((72, 72), text)
    data = document.tobytes()
    document.close()
    return data


class TestDocumentLoader:
    """Test suite for DocumentLoader class."""

    def test_extract_pdf_pages(self):
        """Test PDF pages are joined with page-break markers."""
        data = build_pdf(["Newton first law", "Momentum conservation"])

        extracted = DocumentLoader().extract("physics.pdf", data)

        assert extracted.is_paginated is True
        assert extracted.num_pages == 2
        pages = extracted.text.split(PAGE_BREAK)
        assert len(pages) == 2
        assert "Newton first law" in pages[0]
        assert "Momentum conservation" in pages[1]

    def test_extension_is_case_insensitive(self):
        extracted = DocumentLoader().extract("SLIDES.PDF", build_pdf(["Slide"]))
        assert extracted.num_pages == 1

    def test_extract_text_file(self):
        extracted = DocumentLoader().extract("notes.txt", "Cells divide by mitosis".encode("utf-8"))

        assert extracted.text == "Cells divide by mitosis"
        assert extracted.num_pages == 1
        assert extracted.is_paginated is False

    def test_invalid_utf8_is_replaced(self):
        extracted = DocumentLoader().extract("notes.txt", b"caf\xff notes")
        assert extracted.text.endswith(" notes")

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedFileTypeError, match="Unsupported file type"):
            DocumentLoader().extract("notes.docx", b"data")
