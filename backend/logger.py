"""Structured logging configuration for the NoteWise study assistant."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Attributes passed through `extra=` that are copied into JSON records
STRUCTURED_FIELDS = (
    "provider",
    "key_index",
    "subject_id",
    "file_name",
    "error_code",
    "latency_ms",
    "retrieval_mode",
)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure the root logger once for an entry point.

    Args:
        log_level: Level name such as INFO or DEBUG
        log_format: "json" for structured records, anything else for plain text
    """
    handler = logging.StreamHandler()
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
