"""Data models for the NoteWise study assistant."""
from .chunk import Chunk, Citation, ScoredChunk
from .document import ExtractedText, StoredDocument
from .study import (
    AnswerResult,
    Confidence,
    Flashcard,
    MCQ,
    QuizResult,
    ShortAnswer,
    Turn,
)

__all__ = [
    "Chunk",
    "Citation",
    "ScoredChunk",
    "ExtractedText",
    "StoredDocument",
    "AnswerResult",
    "Confidence",
    "Flashcard",
    "MCQ",
    "QuizResult",
    "ShortAnswer",
    "Turn",
]
