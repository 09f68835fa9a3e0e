"""Deterministic, feature-attribution style explanation of answer confidence."""
from typing import List

from models.chunk import ScoredChunk

NO_CONTENT_EXPLANATION = (
    "No relevant content found in uploaded notes. Confidence is Low because "
    "no source material matches the query."
)

RATIONALE = {
    "High": "High semantic similarity scores and strong evidence coverage.",
    "Medium": "Partial matches found; coverage may be incomplete and the answer may not be fully supported.",
    "Low": "Low semantic overlap; sources may not directly address the question.",
}

STRONG_MATCH = 0.85
MODERATE_MATCH = 0.6
SUPPORTING_SCORE = 0.5
DISTRIBUTED_SPREAD = 0.15


def _percent(score: float) -> str:
    return f"{score * 100:.1f}%"


def explain_confidence(chunks: List[ScoredChunk], confidence: str) -> str:
    """
    Explain a confidence label from the retrieved chunks' scores.

    Args:
        chunks: Chunks actually retrieved for the query, best first
        confidence: "High", "Medium" or "Low"

    Returns:
        Header with rationale followed by itemized contributing factors
    """
    if not chunks:
        return NO_CONTENT_EXPLANATION

    scores = [chunk.score for chunk in chunks]
    top_score = max(scores)
    average = sum(scores) / len(scores)
    spread = top_score - min(scores)
    supporting = sum(1 for score in scores if score > SUPPORTING_SCORE)
    top_chunk = max(chunks, key=lambda c: c.score)

    if top_score > STRONG_MATCH:
        strength = "Strong"
    elif top_score > MODERATE_MATCH:
        strength = "Moderate"
    else:
        strength = "Weak"

    factors = [f"{strength} semantic match (top similarity: {_percent(top_score)})"]
    if spread < DISTRIBUTED_SPREAD:
        factors.append("Multiple chunks equally relevant: distributed evidence")
    else:
        factors.append(
            f"Concentrated evidence in top source: {top_chunk.file_name} "
            f"(Page {top_chunk.page_number})"
        )
    factors.append(
        f"{supporting} chunk(s) with >50% relevance out of {len(chunks)} retrieved"
    )
    factors.append(f"Average chunk relevance: {_percent(average)}")

    rationale = RATIONALE.get(confidence, RATIONALE["Low"])
    bullet_list = "\n".join(f"- {factor}" for factor in factors)
    return (
        f"Confidence: {confidence}. {rationale}\n\n"
        f"Contributing factors:\n{bullet_list}"
    )
