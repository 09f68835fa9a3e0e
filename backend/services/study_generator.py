"""Quiz, flashcard and cheatsheet generation from a subject's chunks."""
import logging
from typing import List, Optional, Sequence

from models.chunk import Citation, ScoredChunk
from models.study import Flashcard, MCQ, QuizResult, ShortAnswer
from services.llm_client import LLMClient
from services.output_parser import parse_flashcards_payload, parse_quiz_payload

logger = logging.getLogger(__name__)

MCQ_COUNT = 5
SHORT_ANSWER_COUNT = 3
FLASHCARD_COUNT = 5
PROGRESSIVE_DIFFICULTIES = ("adaptive", "increasing", "progressive")


def _source_context(chunks: Sequence[ScoredChunk], with_chunk_index: bool = True) -> str:
    blocks = []
    for i, c in enumerate(chunks, start=1):
        label = f"Source {i}: {c.file_name}, Page {c.page_number}"
        if with_chunk_index:
            label += f", Chunk {c.chunk_index}"
        blocks.append(f"[{label}]\n{c.content}")
    return "\n\n---\n\n".join(blocks)


def _citation(index: int, chunks: Sequence[ScoredChunk]) -> Optional[Citation]:
    if 1 <= index <= len(chunks):
        return chunks[index - 1].to_citation()
    return None


def difficulty_instruction(difficulty: str) -> str:
    if difficulty.lower() in PROGRESSIVE_DIFFICULTIES:
        return (
            "Start with basic foundational questions and progressively make each "
            "question harder, ordering them from easiest to hardest."
        )
    return f"Generate questions appropriate for a '{difficulty}' difficulty level."


class StudyMaterialGenerator:
    """Bulk generators that share the grounding and citation discipline."""

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    def generate_quiz(
        self,
        chunks: List[ScoredChunk],
        subject_name: str,
        difficulty: str = "medium"
    ) -> QuizResult:
        """
        Generate 5 MCQs and 3 short-answer questions.

        Questions citing a source index outside the provided chunks are
        dropped. Unparseable output yields an empty quiz.
        """
        if not chunks:
            return QuizResult()

        prompt = f"""You are a study assistant. Generate quiz questions from the following study material for the subject "{subject_name}".

DIFFICULTY NOTE:
{difficulty_instruction(difficulty)}

SOURCE MATERIAL:
{_source_context(chunks)}

Generate EXACTLY:
- {MCQ_COUNT} multiple-choice questions (MCQs) with 4 options each, the correct answer index (0-3), a brief explanation, and a citation
- {SHORT_ANSWER_COUNT} short-answer questions with model answers and citations

All questions must be based STRICTLY on the provided source material. Include source references.

Respond in this EXACT JSON format (no markdown, no code fences):
{{
  "mcqs": [
    {{
      "question": "Question text?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctIndex": 0,
      "explanation": "Brief explanation of why this is correct",
      "citedSource": 1
    }}
  ],
  "shortAnswer": [
    {{
      "question": "Question text?",
      "modelAnswer": "Detailed model answer",
      "citedSource": 1
    }}
  ]
}}"""

        payload = parse_quiz_payload(self.llm_client.complete(prompt))
        if payload is None:
            logger.warning("Quiz output could not be parsed; returning empty quiz")
            return QuizResult()

        result = QuizResult()
        for item in payload.mcqs:
            citation = _citation(item.cited_source, chunks)
            if citation is None:
                continue
            result.mcqs.append(MCQ(
                question=item.question,
                options=item.options,
                correct_index=item.correct_index,
                explanation=item.explanation,
                citation=citation,
            ))
        for item in payload.short_answer:
            citation = _citation(item.cited_source, chunks)
            if citation is None:
                continue
            result.short_answer.append(ShortAnswer(
                question=item.question,
                model_answer=item.model_answer,
                citation=citation,
            ))

        dropped = len(payload.mcqs) + len(payload.short_answer) - len(result.mcqs) - len(result.short_answer)
        if dropped:
            logger.warning(f"Dropped {dropped} quiz question(s) with invalid source references")
        return result

    def generate_active_recall(self, chunks: List[ScoredChunk], subject_name: str) -> List[Flashcard]:
        """Generate 5 flashcards; empty list on unparseable output."""
        if not chunks:
            return []

        prompt = f"""You are a study assistant creating an Active Recall session. Generate {FLASHCARD_COUNT} rapid-fire flashcard questions based on the following material for "{subject_name}".

SOURCE MATERIAL:
{_source_context(chunks)}

Generate EXACTLY {FLASHCARD_COUNT} quick, single-concept questions and their concise answers.

Respond in this EXACT JSON format:
[
  {{
    "question": "What is...",
    "answer": "A concise answer...",
    "citedSource": 1
  }}
]"""

        items = parse_flashcards_payload(self.llm_client.complete(prompt))
        if items is None:
            logger.warning("Flashcard output could not be parsed; returning no cards")
            return []

        cards = []
        for item in items:
            citation = _citation(item.cited_source, chunks)
            if citation is not None:
                cards.append(Flashcard(question=item.question, answer=item.answer, citation=citation))
        return cards

    def generate_cheatsheet(self, chunks: List[ScoredChunk], subject_name: str) -> str:
        """Generate a Markdown cheatsheet. Not cited per line."""
        if not chunks:
            return ""

        prompt = f"""You are a study assistant. Create a highly concise, organized Markdown cheatsheet summarizing the following study material for "{subject_name}".

SOURCE MATERIAL:
{_source_context(chunks, with_chunk_index=False)}

INSTRUCTIONS:
- Use Markdown formatting (headings, bullet points, bold text).
- Focus only on key terms, definitions, formulas, and critical concepts.
- Omit fluff. Keep it extremely scannable for an exam review.
- Do NOT output JSON. Output pure Markdown."""

        return self.llm_client.complete(prompt).strip()
