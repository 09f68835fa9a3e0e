"""Services for the NoteWise study assistant."""
from .key_pool import ApiKeyPool, AllKeysDeadError, KeysExhaustedError, KeyPoolError
from .chunking_engine import ChunkingEngine, chunk_text
from .document_loader import DocumentLoader, UnsupportedFileTypeError
from .document_store import DocumentStore, InMemoryDocumentStore, SupabaseDocumentStore
from .embedding_model import EmbeddingModel, EmbeddingAPIError
from .llm_client import LLMClient, LLMError, LLMClientError, GroqBackend, OllamaBackend
from .retrieval_engine import RetrievalEngine, cosine_similarity
from .confidence_explainer import explain_confidence
from .answer_synthesizer import AnswerSynthesizer
from .study_generator import StudyMaterialGenerator
from .ingestion_service import IngestionService, IngestionResult

__all__ = [
    'ApiKeyPool', 'AllKeysDeadError', 'KeysExhaustedError', 'KeyPoolError',
    'ChunkingEngine', 'chunk_text', 'DocumentLoader', 'UnsupportedFileTypeError',
    'DocumentStore', 'InMemoryDocumentStore', 'SupabaseDocumentStore',
    'EmbeddingModel', 'EmbeddingAPIError', 'LLMClient', 'LLMError', 'LLMClientError',
    'GroqBackend', 'OllamaBackend', 'RetrievalEngine', 'cosine_similarity',
    'explain_confidence', 'AnswerSynthesizer', 'StudyMaterialGenerator',
    'IngestionService', 'IngestionResult',
]
