"""Grounded answer generation with citations and confidence explanation."""
import logging
from typing import List, Optional, Sequence

from models.chunk import Citation, ScoredChunk
from models.study import AnswerResult, Turn
from services.confidence_explainer import explain_confidence
from services.llm_client import LLMClient
from services.output_parser import (
    AnswerPayload,
    contains_not_found,
    not_found_answer,
    parse_answer_payload,
)

logger = logging.getLogger(__name__)

FALLBACK_CITATION_COUNT = 3


def format_sources(chunks: Sequence[ScoredChunk]) -> str:
    return "\n\n---\n\n".join(
        f"[Source {i}: {c.file_name}, Page {c.page_number}, Chunk {c.chunk_index}, "
        f"Similarity: {c.score * 100:.1f}%]\n{c.content}"
        for i, c in enumerate(chunks, start=1)
    )


def format_history(history: Sequence[Turn]) -> str:
    return "\n".join(
        f"{'Student' if turn.role == 'user' else 'Teacher'}: {turn.content}"
        for turn in history
    )


def similarity_hint(chunks: Sequence[ScoredChunk]) -> str:
    average = sum(c.score for c in chunks) / len(chunks)
    if average > 0.7:
        return "The similarity scores are high."
    if average > 0.4:
        return "The similarity scores are moderate."
    return "The similarity scores are low, exercise caution."


def citations_for(indices: Sequence[int], chunks: Sequence[ScoredChunk]) -> List[Citation]:
    """Map 1-based source indices to citations, dropping out-of-range ones."""
    citations: List[Citation] = []
    seen = set()
    for index in indices:
        if 1 <= index <= len(chunks) and index not in seen:
            seen.add(index)
            citations.append(chunks[index - 1].to_citation())
    return citations


class AnswerSynthesizer:
    """Turns retrieved chunks and a question into a citation-backed answer."""

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    @staticmethod
    def build_prompt(
        query: str,
        chunks: Sequence[ScoredChunk],
        subject_name: str,
        history: Optional[Sequence[Turn]] = None
    ) -> str:
        """
        Build the grounding prompt.

        Args:
            query: Student question
            chunks: Retrieved chunks, referenced as Source 1..N
            subject_name: Subject used in the canonical not-found sentence
            history: Prior turns, oldest first

        Returns:
            Complete prompt string
        """
        history_str = format_history(history or [])
        history_section = f"CONVERSATION HISTORY:\n{history_str}\n\n" if history_str else ""

        return f"""You are a study assistant. Answer the student's question STRICTLY using ONLY the provided source material. Do NOT use any external knowledge.

RULES:
1. If the sources do not contain enough information to answer, respond EXACTLY with: "{not_found_answer(subject_name)}"
2. Cite your sources using the source numbers provided (e.g., [Source 1], [Source 2])
3. Rate your confidence as High, Medium, or Low. {similarity_hint(chunks)}
4. Extract the key evidence snippets you used, quoted verbatim from the sources
5. Explain WHY you assigned that confidence level
6. Format the answer text with Markdown (headings, lists, tables) where it helps

SOURCE MATERIAL:
{format_sources(chunks)}

{history_section}STUDENT'S QUESTION: {query}

Respond with a single JSON object and nothing else, in this EXACT format:
{{
  "answer": "Your detailed answer with [Source N] citations inline. Escape newlines correctly.",
  "citedSources": [1, 2],
  "confidence": "High",
  "confidenceReason": "Brief explanation why this confidence level was assigned",
  "evidenceSnippets": ["key quote from source 1", "key quote from source 2"],
  "notFound": false
}}"""

    def generate_answer(
        self,
        query: str,
        chunks: List[ScoredChunk],
        subject_name: str,
        history: Optional[List[Turn]] = None
    ) -> AnswerResult:
        """
        Generate a grounded answer from retrieved chunks.

        Never calls the model when no chunks were retrieved. Malformed model
        output degrades to a Low-confidence answer instead of raising.

        Args:
            query: Student question
            chunks: Chunks returned by the retriever, best first
            subject_name: Subject name for the not-found sentence
            history: Prior turns supplied by the caller

        Returns:
            AnswerResult

        Raises:
            AllKeysDeadError / KeysExhaustedError / LLMClientError: Backend unavailable
        """
        if not chunks:
            logger.info("No chunks retrieved; returning not-found answer")
            return self._not_found(subject_name, [])

        prompt = self.build_prompt(query, chunks, subject_name, history)
        response_text = self.llm_client.complete(prompt)

        payload = parse_answer_payload(response_text)
        if payload is None:
            return self._from_unparsed(response_text, chunks, subject_name)
        return self._from_payload(payload, chunks, subject_name)

    def _from_payload(
        self,
        payload: AnswerPayload,
        chunks: List[ScoredChunk],
        subject_name: str
    ) -> AnswerResult:
        if payload.not_found or contains_not_found(payload.answer):
            return self._not_found(subject_name, chunks)

        explanation = explain_confidence(chunks, payload.confidence)
        if payload.confidence_reason.strip():
            explanation = f"{explanation}\n\nAI reasoning: {payload.confidence_reason.strip()}"

        return AnswerResult(
            answer=payload.answer,
            citations=citations_for(payload.cited_sources, chunks),
            confidence=payload.confidence,
            confidence_explanation=explanation,
            evidence_snippets=[s for s in payload.evidence_snippets if s.strip()],
            not_found=False,
        )

    def _from_unparsed(
        self,
        response_text: str,
        chunks: List[ScoredChunk],
        subject_name: str
    ) -> AnswerResult:
        logger.warning("Could not parse structured answer; using raw model text")
        if contains_not_found(response_text):
            return self._not_found(subject_name, chunks)

        return AnswerResult(
            answer=response_text,
            citations=[c.to_citation() for c in chunks[:FALLBACK_CITATION_COUNT]],
            confidence="Low",
            confidence_explanation=explain_confidence(chunks, "Low"),
            evidence_snippets=[],
            not_found=False,
        )

    @staticmethod
    def _not_found(subject_name: str, chunks: List[ScoredChunk]) -> AnswerResult:
        return AnswerResult(
            answer=not_found_answer(subject_name),
            citations=[],
            confidence="Low",
            confidence_explanation=explain_confidence(chunks, "Low"),
            evidence_snippets=[],
            not_found=True,
        )
