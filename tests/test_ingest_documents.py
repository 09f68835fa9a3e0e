"""Tests for the command-line ingestion script."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from unittest.mock import Mock
from ingest_documents import parse_args, run
from services.ingestion_service import IngestionResult


class TestIngestDocumentsScript:

    def test_parse_args(self):
        args = parse_args(["bio", "a.pdf", "b.txt"])

        assert args.subject_id == "bio"
        assert args.files == [Path("a.pdf"), Path("b.txt")]

    def test_run_counts_failures(self, tmp_path):
        good = tmp_path / "notes.txt"
        good.write_text("mitosis and meiosis")
        missing = tmp_path / "missing.pdf"

        service = Mock()
        service.ingest.return_value = IngestionResult("notes.txt", document_id="doc-1", chunk_count=1, embedded=True)

        failures = run(service, "bio", [good, missing])

        assert failures == 1
        service.ingest.assert_called_once_with("bio", "notes.txt", b"mitosis and meiosis")

    def test_run_reports_ingestion_errors(self, tmp_path):
        path = tmp_path / "slides.docx"
        path.write_bytes(b"data")

        service = Mock()
        service.ingest.return_value = IngestionResult("slides.docx", error="Unsupported file type")

        assert run(service, "bio", [path]) == 1
