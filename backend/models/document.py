"""Document data models."""
from dataclasses import dataclass, field
from typing import List, Optional

from models.chunk import Chunk


@dataclass
class ExtractedText:
    """Raw text pulled out of an uploaded file."""
    file_name: str
    text: str
    num_pages: int
    is_paginated: bool  # True when pages are separated by form-feed markers


@dataclass
class StoredDocument:
    """An uploaded document and its ordered chunks."""
    file_name: str
    chunks: List[Chunk] = field(default_factory=list)
    file_url: Optional[str] = None
    document_id: Optional[str] = None

    @property
    def has_embeddings(self) -> bool:
        return any(chunk.has_embedding for chunk in self.chunks)
