"""
Document Ingestion Script for the NoteWise study assistant.

This script:
1. Reads each PDF/TXT file given on the command line
2. Chunks it page by page
3. Generates embeddings using the HuggingFace API (with key rotation)
4. Stores the document and its chunks in Supabase under the subject

Usage:
    python ingest_documents.py SUBJECT_ID notes.pdf lecture.txt
"""
import argparse
import sys
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_store import SupabaseDocumentStore
from services.embedding_model import EmbeddingModel
from services.ingestion_service import IngestionService
from config import LOG_LEVEL, LOG_FORMAT
from logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest study notes into a subject")
    parser.add_argument("subject_id", help="Subject the documents belong to")
    parser.add_argument("files", nargs="+", type=Path, help="PDF or TXT files to ingest")
    return parser.parse_args(argv)


def run(service: IngestionService, subject_id: str, files: List[Path]) -> int:
    """
    Ingest files one by one.

    Returns:
        Number of files that could not be stored
    """
    failures = 0
    for index, path in enumerate(files, start=1):
        logger.info(f"[{index}/{len(files)}] Processing {path.name}...")
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"  Could not read {path}: {e}")
            failures += 1
            continue

        result = service.ingest(subject_id, path.name, data)
        if not result.success:
            logger.error(f"  Failed: {result.error}")
            failures += 1
        elif not result.embedded:
            logger.warning(
                f"  Stored {result.chunk_count} chunks WITHOUT embeddings "
                f"(keyword retrieval only): {result.error}"
            )
        else:
            logger.info(f"  Stored {result.chunk_count} embedded chunks")
    return failures


def main(argv: Optional[List[str]] = None) -> None:
    """Main ingestion process."""
    args = parse_args(argv)
    setup_logging(LOG_LEVEL, LOG_FORMAT)

    try:
        service = IngestionService(SupabaseDocumentStore(), EmbeddingModel())
        failures = run(service, args.subject_id, args.files)
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        sys.exit(1)

    logger.info(f"Ingestion complete: {len(args.files) - failures}/{len(args.files)} files stored")
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
