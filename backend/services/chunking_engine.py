"""Chunking engine that splits extracted text into page-tagged word chunks."""
import logging
import math
from typing import List, Tuple

from models.chunk import Chunk
from models.document import ExtractedText
from config import CHUNK_SIZE

logger = logging.getLogger(__name__)

PAGE_BREAK = "\f"


def chunk_text(text: str, max_words: int) -> List[str]:
    """
    Split text into consecutive chunks of at most `max_words` words.

    Args:
        text: Raw text
        max_words: Maximum words per chunk

    Returns:
        Ordered list of non-empty chunks joined by single spaces
    """
    if max_words <= 0:
        raise ValueError("max_words must be positive")

    words = text.split()
    return [
        " ".join(words[start:start + max_words])
        for start in range(0, len(words), max_words)
    ]


def split_text_evenly(text: str, parts: int) -> List[str]:
    """
    Approximate pagination: cut text into `parts` equal character ranges.

    Page numbers derived from this split are an estimate; a page boundary
    can fall mid-word and may not match the source layout.
    """
    if not text:
        return []
    part_size = math.ceil(len(text) / max(parts, 1))
    return [text[start:start + part_size] for start in range(0, len(text), part_size)]


def split_pages(text: str, num_pages: int) -> Tuple[List[str], bool]:
    """
    Split extracted PDF text into page segments.

    Uses form-feed page-break markers when they yield at least `num_pages`
    segments, otherwise falls back to approximate pagination.

    Returns:
        (segments, approximate) where approximate is True for the fallback
    """
    num_pages = max(num_pages, 1)
    segments = text.split(PAGE_BREAK)
    if len(segments) >= num_pages:
        return segments, False
    return split_text_evenly(text, num_pages), True


class ChunkingEngine:
    """Segments extracted documents into retrievable chunks."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk size in words
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def chunk_extracted(self, extracted: ExtractedText) -> List[Chunk]:
        if extracted.is_paginated:
            chunks = self.chunk_paginated(extracted.text, extracted.num_pages)
        else:
            chunks = self.chunk_plain(extracted.text)
        logger.info(f"Chunked {extracted.file_name} into {len(chunks)} chunks")
        return chunks

    def chunk_paginated(self, text: str, num_pages: int) -> List[Chunk]:
        """
        Chunk PDF text page by page.

        Args:
            text: Extracted text with form-feed page breaks
            num_pages: Page count reported by the extractor

        Returns:
            Chunks tagged with 1-based page numbers and per-page indices
        """
        segments, approximate = split_pages(text, num_pages)
        if approximate:
            logger.warning(
                f"Found fewer page breaks than {num_pages} pages; "
                "using approximate pagination"
            )

        chunks: List[Chunk] = []
        for page_idx, segment in enumerate(segments):
            page_text = segment.strip()
            if not page_text:
                continue
            for chunk_idx, content in enumerate(chunk_text(page_text, self.chunk_size)):
                chunks.append(Chunk(
                    content=content,
                    page_number=page_idx + 1,
                    chunk_index=chunk_idx
                ))
        return chunks

    def chunk_plain(self, text: str) -> List[Chunk]:
        """Chunk unpaginated text as a single page."""
        return [
            Chunk(content=content, page_number=1, chunk_index=idx)
            for idx, content in enumerate(chunk_text(text, self.chunk_size))
        ]
