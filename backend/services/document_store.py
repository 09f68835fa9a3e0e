"""Document storage keyed by subject, backed by Supabase or memory."""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from supabase import create_client, Client

from models.chunk import Chunk
from models.document import StoredDocument
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Read/write access to a subject's uploaded documents."""

    @abstractmethod
    def list_documents(self, subject_id: str) -> List[StoredDocument]:
        """Return the subject's documents in storage order."""

    @abstractmethod
    def add_document(self, subject_id: str, document: StoredDocument) -> StoredDocument:
        """Persist a document and return it with its assigned id."""


class InMemoryDocumentStore(DocumentStore):
    """Process-local store, used by tests and local runs."""

    def __init__(self):
        self._documents: Dict[str, List[StoredDocument]] = {}

    def list_documents(self, subject_id: str) -> List[StoredDocument]:
        return list(self._documents.get(subject_id, []))

    def add_document(self, subject_id: str, document: StoredDocument) -> StoredDocument:
        if document.document_id is None:
            document.document_id = uuid.uuid4().hex
        self._documents.setdefault(subject_id, []).append(document)
        return document


def chunk_to_row(chunk: Chunk) -> Dict[str, Any]:
    return {
        "content": chunk.content,
        "page_number": chunk.page_number,
        "chunk_index": chunk.chunk_index,
        "embedding": list(chunk.embedding) if chunk.embedding else [],
    }


def chunk_from_row(row: Dict[str, Any]) -> Chunk:
    embedding = row.get("embedding") or None
    return Chunk(
        content=row["content"],
        page_number=int(row["page_number"]),
        chunk_index=int(row["chunk_index"]),
        embedding=[float(value) for value in embedding] if embedding else None,
    )


class SupabaseDocumentStore(DocumentStore):
    """Store documents with their chunks as a JSON column in Supabase."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = "documents"
    ):
        """
        Initialize the document store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table holding documents

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized SupabaseDocumentStore with table: {table_name}")

    def list_documents(self, subject_id: str) -> List[StoredDocument]:
        response = (
            self.client.table(self.table_name)
            .select("id, file_name, file_url, chunks")
            .eq("subject_id", subject_id)
            .order("created_at")
            .execute()
        )

        documents = [
            StoredDocument(
                file_name=row["file_name"],
                file_url=row.get("file_url") or None,
                document_id=str(row["id"]),
                chunks=[chunk_from_row(chunk) for chunk in row.get("chunks") or []],
            )
            for row in response.data
        ]
        logger.debug(f"Loaded {len(documents)} documents for subject {subject_id}")
        return documents

    def add_document(self, subject_id: str, document: StoredDocument) -> StoredDocument:
        record = {
            "subject_id": subject_id,
            "file_name": document.file_name,
            "file_url": document.file_url,
            "chunks": [chunk_to_row(chunk) for chunk in document.chunks],
        }
        response = self.client.table(self.table_name).insert(record).execute()
        if response.data:
            document.document_id = str(response.data[0]["id"])

        logger.info(
            f"Stored {document.file_name} with {len(document.chunks)} chunks",
            extra={"subject_id": subject_id, "file_name": document.file_name},
        )
        return document
