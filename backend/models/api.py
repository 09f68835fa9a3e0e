"""API request and response models."""
from dataclasses import asdict
from typing import List, Optional
from pydantic import BaseModel, Field

from models.study import AnswerResult, Flashcard, QuizResult


class HistoryTurn(BaseModel):
    role: str
    content: str


class AskRequest(BaseModel):
    question: str
    subject_name: str
    history: List[HistoryTurn] = Field(default_factory=list)


class StudyRequest(BaseModel):
    subject_name: str


class QuizRequest(StudyRequest):
    difficulty: str = "medium"


class CitationModel(BaseModel):
    file_name: str
    page_number: int
    chunk_index: int
    file_url: Optional[str] = None


class AnswerResponse(BaseModel):
    answer: str
    citations: List[CitationModel]
    confidence: str
    confidence_explanation: str
    evidence_snippets: List[str]
    not_found: bool

    @classmethod
    def from_result(cls, result: AnswerResult) -> "AnswerResponse":
        return cls.model_validate(asdict(result))


class MCQModel(BaseModel):
    question: str
    options: List[str]
    correct_index: int
    explanation: str
    citation: CitationModel


class ShortAnswerModel(BaseModel):
    question: str
    model_answer: str
    citation: CitationModel


class QuizResponse(BaseModel):
    mcqs: List[MCQModel]
    short_answer: List[ShortAnswerModel]

    @classmethod
    def from_result(cls, result: QuizResult) -> "QuizResponse":
        return cls.model_validate(asdict(result))


class FlashcardModel(BaseModel):
    question: str
    answer: str
    citation: CitationModel


class FlashcardsResponse(BaseModel):
    flashcards: List[FlashcardModel]

    @classmethod
    def from_cards(cls, cards: List[Flashcard]) -> "FlashcardsResponse":
        return cls(flashcards=[FlashcardModel.model_validate(asdict(card)) for card in cards])


class CheatsheetResponse(BaseModel):
    cheatsheet: str


class UploadResult(BaseModel):
    file_name: str
    document_id: Optional[str] = None
    chunk_count: int = 0
    embedded: bool = False
    error: Optional[str] = None


class UploadResponse(BaseModel):
    results: List[UploadResult]
