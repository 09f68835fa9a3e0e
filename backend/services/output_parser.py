"""Parsing and validation of JSON-shaped model output."""
import json
import logging
from typing import Any, List, Optional, Type, TypeVar
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from models.study import CONFIDENCE_LEVELS

logger = logging.getLogger(__name__)

NOT_FOUND_PHRASE = "not found in your notes"

ModelT = TypeVar("ModelT", bound=BaseModel)


def not_found_answer(subject_name: str) -> str:
    """Canonical answer text when the notes do not cover a question."""
    return f"Not found in your notes for {subject_name}"


def contains_not_found(text: str) -> bool:
    return NOT_FOUND_PHRASE in text.lower()


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the bracket that closes text[start], string-aware."""
    opener = text[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escaped = False

    for position in range(start, len(text)):
        char = text[position]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return position + 1
    return None


def extract_json(text: str, opener: str = "{") -> Optional[Any]:
    """
    Decode the first balanced JSON value starting with `opener`.

    Surrounding prose and Markdown code fences are ignored; brackets and
    fences inside JSON strings do not affect matching. Candidates that
    never close or are not valid JSON are skipped in favour of later ones.

    Args:
        text: Raw model output
        opener: "{" for an object, "[" for an array

    Returns:
        The decoded value, or None if no candidate parses
    """
    start = text.find(opener)
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            start = text.find(opener, start + 1)
            continue
        try:
            return json.loads(text[start:end])
        except json.JSONDecodeError:
            start = text.find(opener, start + 1)
    return None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnswerPayload(_Payload):
    answer: str = ""
    cited_sources: List[int] = Field(default_factory=list, alias="citedSources")
    confidence: str = "Medium"
    confidence_reason: str = Field(default="", alias="confidenceReason")
    evidence_snippets: List[str] = Field(default_factory=list, alias="evidenceSnippets")
    not_found: bool = Field(default=False, alias="notFound")

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().capitalize()
        if value not in CONFIDENCE_LEVELS:
            raise ValueError(f"confidence must be one of {CONFIDENCE_LEVELS}")
        return value

    @model_validator(mode="after")
    def _require_answer(self) -> "AnswerPayload":
        if not self.not_found and not self.answer.strip():
            raise ValueError("answer is required unless notFound is set")
        return self


class MCQPayload(_Payload):
    question: str
    options: List[str] = Field(min_length=2)
    correct_index: int = Field(alias="correctIndex")
    explanation: str = ""
    cited_source: int = Field(alias="citedSource")

    @model_validator(mode="after")
    def _check_answer_index(self) -> "MCQPayload":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError("correctIndex out of range for options")
        return self


class ShortAnswerPayload(_Payload):
    question: str
    model_answer: str = Field(alias="modelAnswer")
    cited_source: int = Field(alias="citedSource")


class QuizPayload(_Payload):
    mcqs: List[MCQPayload] = Field(default_factory=list)
    short_answer: List[ShortAnswerPayload] = Field(default_factory=list, alias="shortAnswer")


class FlashcardPayload(_Payload):
    question: str
    answer: str
    cited_source: int = Field(alias="citedSource")


_FLASHCARDS = TypeAdapter(List[FlashcardPayload])


def _validate(model: Type[ModelT], raw: Optional[Any]) -> Optional[ModelT]:
    if raw is None:
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Model output did not match {model.__name__}: {e.error_count()} error(s)")
        return None


def parse_answer_payload(text: str) -> Optional[AnswerPayload]:
    return _validate(AnswerPayload, extract_json(text, "{"))


def parse_quiz_payload(text: str) -> Optional[QuizPayload]:
    return _validate(QuizPayload, extract_json(text, "{"))


def parse_flashcards_payload(text: str) -> Optional[List[FlashcardPayload]]:
    raw = extract_json(text, "[")
    if raw is None:
        return None
    try:
        return _FLASHCARDS.validate_python(raw)
    except ValidationError as e:
        logger.warning(f"Model output did not match flashcard list: {e.error_count()} error(s)")
        return None
