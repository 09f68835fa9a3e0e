"""Retrieval engine: embedding similarity with a keyword-overlap fallback."""
import logging
import re
from typing import List, Optional, Sequence
import numpy as np

from models.chunk import ScoredChunk
from models.document import StoredDocument
from services.document_store import DocumentStore
from services.embedding_model import EmbeddingModel
from config import DEFAULT_TOP_K, RELEVANCE_THRESHOLD

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset([
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "shall", "can", "need", "dare", "ought",
    "used", "to", "of", "in", "for", "on", "with", "at", "by", "from",
    "as", "into", "through", "during", "before", "after", "above", "below",
    "between", "out", "off", "over", "under", "again", "further", "then",
    "once", "here", "there", "when", "where", "why", "how", "all", "each",
    "every", "both", "few", "more", "most", "other", "some", "such", "no",
    "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    "just", "because", "but", "and", "or", "if", "while", "although",
    "this", "that", "these", "those", "i", "me", "my", "myself", "we",
    "our", "ours", "you", "your", "he", "him", "his", "she", "her",
    "it", "its", "they", "them", "their", "what", "which", "who", "whom",
])

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 for empty, mismatched-length or zero vectors.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    denominator = float(np.linalg.norm(vec_a) * np.linalg.norm(vec_b))
    if denominator == 0.0 or not np.isfinite(denominator):
        return 0.0

    similarity = float(np.dot(vec_a, vec_b) / denominator)
    return max(-1.0, min(1.0, similarity))


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation, drop stop words and 1-character tokens."""
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return [word for word in cleaned.split() if len(word) > 1 and word not in STOP_WORDS]


def keyword_score(query_tokens: List[str], content: str) -> float:
    """Fraction of query tokens that appear in the content."""
    if not query_tokens:
        return 0.0
    content_tokens = set(tokenize(content))
    if not content_tokens:
        return 0.0
    matches = sum(1 for token in query_tokens if token in content_tokens)
    return matches / len(query_tokens)


class EmbeddingModelMissingError(RuntimeError):
    """Subject has embedded chunks but no embedding model is configured."""


class RetrievalEngine:
    """Rank a subject's stored chunks against a query."""

    def __init__(
        self,
        document_store: DocumentStore,
        embedding_model: Optional[EmbeddingModel],
        relevance_threshold: float = RELEVANCE_THRESHOLD
    ):
        """
        Initialize the retrieval engine.

        Args:
            document_store: Source of the subject's documents and chunks
            embedding_model: EmbeddingModel instance for query embedding
            relevance_threshold: Minimum cosine similarity in embedding mode
        """
        self.document_store = document_store
        self.embedding_model = embedding_model
        self.relevance_threshold = relevance_threshold
        logger.info("Initialized RetrievalEngine")

    def retrieve(self, subject_id: str, query: str, top_k: int = DEFAULT_TOP_K) -> List[ScoredChunk]:
        """
        Retrieve the most relevant chunks for a query.

        If any chunk of the subject carries an embedding, the whole subject is
        searched by cosine similarity (chunks without embeddings are skipped)
        and results below the relevance threshold are dropped. Otherwise
        chunks are scored by keyword overlap and any nonzero score qualifies.

        Args:
            subject_id: Subject whose documents are searched
            query: User question
            top_k: Maximum number of chunks to return

        Returns:
            Scored chunks, highest score first; empty if nothing qualifies

        Raises:
            AllKeysDeadError / KeysExhaustedError: If the query cannot be embedded
            EmbeddingModelMissingError: If embedded chunks exist but no model is set
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        documents = self.document_store.list_documents(subject_id)
        if not documents:
            logger.info(f"No documents for subject {subject_id}")
            return []

        if any(document.has_embeddings for document in documents):
            results = self._retrieve_by_embedding(documents, query, top_k)
            mode = "embedding"
        else:
            results = self._retrieve_by_keyword(documents, query, top_k)
            mode = "keyword"

        logger.info(
            f"Retrieved {len(results)} chunks using {mode} mode",
            extra={"subject_id": subject_id, "retrieval_mode": mode},
        )
        return results

    def retrieve_all(self, subject_id: str) -> List[ScoredChunk]:
        """Every chunk of the subject in storage order, each scored 1.0."""
        return [
            ScoredChunk(
                content=chunk.content,
                file_name=document.file_name,
                file_url=document.file_url,
                page_number=chunk.page_number,
                chunk_index=chunk.chunk_index,
                score=1.0,
            )
            for document in self.document_store.list_documents(subject_id)
            for chunk in document.chunks
        ]

    def _retrieve_by_embedding(
        self,
        documents: List[StoredDocument],
        query: str,
        top_k: int
    ) -> List[ScoredChunk]:
        if self.embedding_model is None:
            raise EmbeddingModelMissingError(
                "Subject has embedded chunks but no embedding model is configured"
            )

        query_embedding = self.embedding_model.embed_text(query)

        scored_chunks = []
        for document in documents:
            for chunk in document.chunks:
                if not chunk.has_embedding:
                    continue
                # Clamp to [0, 1]; negative similarity is never relevant
                score = max(0.0, cosine_similarity(query_embedding, chunk.embedding))
                scored_chunks.append(ScoredChunk(
                    content=chunk.content,
                    file_name=document.file_name,
                    file_url=document.file_url,
                    page_number=chunk.page_number,
                    chunk_index=chunk.chunk_index,
                    score=score,
                ))

        scored_chunks.sort(key=lambda c: c.score, reverse=True)
        filtered = [c for c in scored_chunks if c.score >= self.relevance_threshold]
        logger.debug(
            f"Scored {len(scored_chunks)} chunks, {len(filtered)} above "
            f"threshold {self.relevance_threshold}"
        )
        return filtered[:top_k]

    def _retrieve_by_keyword(
        self,
        documents: List[StoredDocument],
        query: str,
        top_k: int
    ) -> List[ScoredChunk]:
        query_tokens = tokenize(query)
        if not query_tokens:
            return []

        scored_chunks = []
        for document in documents:
            for chunk in document.chunks:
                score = keyword_score(query_tokens, chunk.content)
                if score > 0:
                    scored_chunks.append(ScoredChunk(
                        content=chunk.content,
                        file_name=document.file_name,
                        file_url=document.file_url,
                        page_number=chunk.page_number,
                        chunk_index=chunk.chunk_index,
                        score=score,
                    ))

        scored_chunks.sort(key=lambda c: c.score, reverse=True)
        return scored_chunks[:top_k]
