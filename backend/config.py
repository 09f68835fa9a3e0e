"""Configuration management for the NoteWise study assistant."""
import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def parse_api_keys(raw: Optional[str]) -> List[str]:
    """Split a comma-separated credential list, dropping quotes and blanks."""
    if not raw:
        return []
    return [key.strip() for key in raw.replace('"', "").split(",") if key.strip()]


# API Keys (comma-separated lists enable key rotation)
HUGGINGFACE_API_KEYS = parse_api_keys(
    os.getenv("HUGGINGFACE_API_KEYS") or os.getenv("HUGGINGFACE_API_KEY")
)
GROQ_API_KEYS = parse_api_keys(os.getenv("GROQ_API_KEYS") or os.getenv("GROQ_API_KEY"))
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq").lower()
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "llama-3.3-70b-versatile")
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2:1b")
COMPLETION_TEMPERATURE = 0.3
COMPLETION_MAX_TOKENS = 4096

# Chunking Configuration
CHUNK_SIZE = 500  # words

# Retrieval Configuration
RELEVANCE_THRESHOLD = 0.3
DEFAULT_TOP_K = 10

# Generation limits applied by the route layer
HISTORY_TURN_LIMIT = 10
QUIZ_CHUNK_LIMIT = 30
FLASHCARD_CHUNK_LIMIT = 30
CHEATSHEET_CHUNK_LIMIT = 50
