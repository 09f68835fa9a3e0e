"""Result models for answers and generated study material."""
from dataclasses import dataclass, field
from typing import List, Literal

from models.chunk import Citation

Confidence = Literal["High", "Medium", "Low"]
CONFIDENCE_LEVELS = ("High", "Medium", "Low")


@dataclass
class Turn:
    """One prior message in a conversation."""
    role: str  # "user" or "assistant"
    content: str


@dataclass
class AnswerResult:
    """Grounded answer with citations and a confidence explanation."""
    answer: str
    citations: List[Citation]
    confidence: Confidence
    confidence_explanation: str
    evidence_snippets: List[str] = field(default_factory=list)
    not_found: bool = False


@dataclass
class MCQ:
    question: str
    options: List[str]
    correct_index: int
    explanation: str
    citation: Citation


@dataclass
class ShortAnswer:
    question: str
    model_answer: str
    citation: Citation


@dataclass
class QuizResult:
    mcqs: List[MCQ] = field(default_factory=list)
    short_answer: List[ShortAnswer] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.mcqs and not self.short_answer


@dataclass
class Flashcard:
    question: str
    answer: str
    citation: Citation
