"""Upload pipeline: extract, chunk, embed and store a document."""
import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from models.chunk import Chunk
from models.document import StoredDocument
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader, UnsupportedFileTypeError
from services.document_store import DocumentStore
from services.embedding_model import EmbeddingModel

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Outcome for one uploaded file."""
    file_name: str
    document_id: Optional[str] = None
    chunk_count: int = 0
    embedded: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.document_id is not None


class IngestionService:
    """Turns uploaded files into stored, optionally embedded, chunks."""

    def __init__(
        self,
        document_store: DocumentStore,
        embedding_model: Optional[EmbeddingModel],
        document_loader: Optional[DocumentLoader] = None,
        chunking_engine: Optional[ChunkingEngine] = None
    ):
        self.document_store = document_store
        self.embedding_model = embedding_model
        self.document_loader = document_loader or DocumentLoader()
        self.chunking_engine = chunking_engine or ChunkingEngine()

    def ingest(
        self,
        subject_id: str,
        file_name: str,
        data: bytes,
        file_url: Optional[str] = None
    ) -> IngestionResult:
        """
        Ingest one file into a subject.

        Extraction problems are reported in the result. If embedding fails,
        the document is still stored without embeddings so keyword retrieval
        can serve it.

        Args:
            subject_id: Subject the document belongs to
            file_name: Original file name (.pdf or .txt)
            data: Raw file bytes
            file_url: Optional link to the original upload

        Returns:
            IngestionResult
        """
        try:
            extracted = self.document_loader.extract(file_name, data)
        except UnsupportedFileTypeError as e:
            return IngestionResult(file_name=file_name, error=str(e))
        except Exception as e:
            logger.error(f"Error parsing {file_name}: {e}", exc_info=True)
            return IngestionResult(file_name=file_name, error="Failed to parse file")

        chunks = self.chunking_engine.chunk_extracted(extracted)
        if not chunks:
            return IngestionResult(file_name=file_name, error="No text could be extracted from file")

        chunks, embed_error = self._embed(file_name, chunks)

        document = self.document_store.add_document(
            subject_id,
            StoredDocument(file_name=file_name, chunks=chunks, file_url=file_url),
        )
        logger.info(
            f"Ingested {file_name}: {len(chunks)} chunks, embedded={embed_error is None}",
            extra={"subject_id": subject_id, "file_name": file_name},
        )
        return IngestionResult(
            file_name=file_name,
            document_id=document.document_id,
            chunk_count=len(chunks),
            embedded=embed_error is None,
            error=embed_error,
        )

    def _embed(self, file_name: str, chunks: List[Chunk]):
        if self.embedding_model is None:
            return chunks, "Embedding model not configured"
        try:
            vectors = self.embedding_model.embed_batch([chunk.content for chunk in chunks])
        except Exception as e:
            logger.warning(
                f"Embedding generation failed for {file_name}, storing without embeddings: {e}",
                extra={"file_name": file_name},
            )
            return chunks, f"Embedding failed: {e}"
        return [replace(chunk, embedding=vector) for chunk, vector in zip(chunks, vectors)], None
