"""Chunk data models."""
from dataclasses import dataclass
from typing import Optional, List


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of a document's extracted text."""
    content: str
    page_number: int  # 1-based
    chunk_index: int  # 0-based within the page
    embedding: Optional[List[float]] = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


@dataclass(frozen=True)
class Citation:
    """Pointer back to a stored chunk."""
    file_name: str
    page_number: int
    chunk_index: int
    file_url: Optional[str] = None


@dataclass
class ScoredChunk:
    """Chunk with relevance score from retrieval."""
    content: str
    file_name: str
    page_number: int
    chunk_index: int
    score: float  # cosine similarity or keyword overlap, 0.0 to 1.0
    file_url: Optional[str] = None

    def to_citation(self) -> Citation:
        return Citation(
            file_name=self.file_name,
            page_number=self.page_number,
            chunk_index=self.chunk_index,
            file_url=self.file_url,
        )
