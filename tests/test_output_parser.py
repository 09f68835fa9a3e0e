"""Unit tests for model output parsing."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from services.output_parser import (
    contains_not_found,
    extract_json,
    not_found_answer,
    parse_answer_payload,
    parse_flashcards_payload,
    parse_quiz_payload,
)


class TestExtractJson:
    """Tests for locating JSON inside free-form model text."""

    def test_plain_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_object_inside_prose_and_fences(self):
        text = 'Here is the answer:\n```json\n{"answer": "x", "citedSources": [1]}\n```\nHope it helps.'
        assert extract_json(text) == {"answer": "x", "citedSources": [1]}

    def test_braces_and_fences_inside_strings(self):
        text = '{"answer": "Use a set {1, 2} and\\n```mermaid\\ngraph TD\\n```\\n", "n": 1}'
        assert extract_json(text) == {
            "answer": "Use a set {1, 2} and\n```mermaid\ngraph TD\n```\n",
            "n": 1,
        }

    def test_skips_invalid_candidate(self):
        text = 'Formula {x + y} is key. {"answer": "ok"}'
        assert extract_json(text) == {"answer": "ok"}

    def test_skips_opener_that_never_closes(self):
        text = 'Sets like {a, b are covered below.\n```json\n{"answer": "ok"}\n```'
        assert extract_json(text) == {"answer": "ok"}

    def test_skips_unclosed_array_opener(self):
        assert extract_json('Intervals [0, 1) and then [{"q": 1}]', "[") == [{"q": 1}]

    def test_array(self):
        assert extract_json('Cards: [{"q": 1}, {"q": 2}] done', "[") == [{"q": 1}, {"q": 2}]

    def test_no_json(self):
        assert extract_json("I could not find anything") is None

    def test_unbalanced(self):
        assert extract_json('{"answer": "cut off') is None


class TestNotFound:
    """Tests for the canonical not-found sentence."""

    def test_canonical_text(self):
        assert not_found_answer("Physics") == "Not found in your notes for Physics"

    def test_detection_is_case_insensitive(self):
        assert contains_not_found("NOT FOUND IN YOUR NOTES for Physics")
        assert not contains_not_found("Found in chapter 2 of your notes")


class TestAnswerPayload:
    """Tests for answer payload validation."""

    def test_valid_payload_with_aliases(self):
        payload = parse_answer_payload(
            '{"answer": "Inertia [Source 1]", "citedSources": [1, 3], "confidence": "high", '
            '"confidenceReason": "Direct quote", "evidenceSnippets": ["an object at rest"], '
            '"notFound": false}'
        )

        assert payload.answer == "Inertia [Source 1]"
        assert payload.cited_sources == [1, 3]
        assert payload.confidence == "High"
        assert payload.confidence_reason == "Direct quote"
        assert payload.evidence_snippets == ["an object at rest"]
        assert payload.not_found is False

    def test_invalid_confidence_rejected(self):
        assert parse_answer_payload('{"answer": "x", "confidence": "Certain"}') is None

    def test_missing_answer_rejected(self):
        assert parse_answer_payload('{"citedSources": [1], "confidence": "High"}') is None

    def test_not_found_without_answer_accepted(self):
        payload = parse_answer_payload('{"notFound": true, "confidence": "Low"}')
        assert payload.not_found is True

    def test_wrong_types_rejected(self):
        assert parse_answer_payload('{"answer": "x", "citedSources": "one"}') is None


class TestQuizAndFlashcardPayloads:
    """Tests for bulk generation payloads."""

    def test_quiz_payload(self):
        payload = parse_quiz_payload(
            '{"mcqs": [{"question": "Q?", "options": ["a", "b", "c", "d"], "correctIndex": 2, '
            '"explanation": "because", "citedSource": 1}], '
            '"shortAnswer": [{"question": "Why?", "modelAnswer": "Because", "citedSource": 2}]}'
        )

        assert payload.mcqs[0].correct_index == 2
        assert payload.short_answer[0].model_answer == "Because"

    def test_quiz_correct_index_out_of_range(self):
        text = ('{"mcqs": [{"question": "Q?", "options": ["a", "b"], "correctIndex": 3, '
                '"citedSource": 1}], "shortAnswer": []}')
        assert parse_quiz_payload(text) is None

    def test_flashcards_payload(self):
        cards = parse_flashcards_payload(
            '```json\n[{"question": "Define inertia", "answer": "Resistance to change", "citedSource": 1}]\n```'
        )
        assert len(cards) == 1
        assert cards[0].cited_source == 1

    def test_flashcards_missing_field(self):
        assert parse_flashcards_payload('[{"question": "Q"}]') is None
