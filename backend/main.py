"""Main entry point for the NoteWise study assistant API."""
import logging
import time
from typing import List
import httpx
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import (
    CHEATSHEET_CHUNK_LIMIT,
    CORS_ORIGINS,
    DEFAULT_TOP_K,
    FLASHCARD_CHUNK_LIMIT,
    HISTORY_TURN_LIMIT,
    LOG_FORMAT,
    LOG_LEVEL,
    PORT,
    QUIZ_CHUNK_LIMIT,
)
from logger import setup_logging
from models.api import (
    AnswerResponse,
    AskRequest,
    CheatsheetResponse,
    FlashcardsResponse,
    QuizRequest,
    QuizResponse,
    StudyRequest,
    UploadResponse,
    UploadResult,
)
from models.chunk import ScoredChunk
from models.study import Turn
from services.answer_synthesizer import AnswerSynthesizer
from services.document_store import SupabaseDocumentStore
from services.embedding_model import EmbeddingModel
from services.ingestion_service import IngestionService
from services.key_pool import AllKeysDeadError, KeysExhaustedError
from services.llm_client import LLMClient, LLMClientError
from services.retrieval_engine import EmbeddingModelMissingError, RetrievalEngine
from services.study_generator import StudyMaterialGenerator

logger = logging.getLogger(__name__)

app = FastAPI(
    title="NoteWise Study Assistant",
    description="Answers questions strictly grounded in uploaded study notes",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
retrieval_engine: RetrievalEngine = None
answer_synthesizer: AnswerSynthesizer = None
study_generator: StudyMaterialGenerator = None
ingestion_service: IngestionService = None

# Failures meaning the AI backend itself is unavailable
BACKEND_ERRORS = (
    AllKeysDeadError,
    KeysExhaustedError,
    LLMClientError,
    EmbeddingModelMissingError,
    httpx.HTTPError,
)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global retrieval_engine, answer_synthesizer, study_generator, ingestion_service

    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing NoteWise services...")

    try:
        embedding_model = EmbeddingModel()
        document_store = SupabaseDocumentStore()
        retrieval_engine = RetrievalEngine(document_store, embedding_model)
        ingestion_service = IngestionService(document_store, embedding_model)

        llm_client = LLMClient()
        answer_synthesizer = AnswerSynthesizer(llm_client)
        study_generator = StudyMaterialGenerator(llm_client)

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _backend_error(e: Exception) -> HTTPException:
    """Map AI backend failures to a 503 with a structured error body."""
    if isinstance(e, AllKeysDeadError):
        code = "ALL_KEYS_DEAD"
        message = str(e)
    elif isinstance(e, KeysExhaustedError):
        code = "KEYS_EXHAUSTED"
        message = str(e)
    elif isinstance(e, LLMClientError):
        code = e.error.code
        message = e.error.message
    elif isinstance(e, EmbeddingModelMissingError):
        code = "EMBEDDING_MODEL_MISSING"
        message = str(e)
    else:
        code = "BACKEND_UNREACHABLE"
        message = f"AI backend request failed: {e}"

    logger.error(f"AI backend unavailable: {message}", extra={"error_code": code})
    return HTTPException(status_code=503, detail={"error": {"code": code, "message": message}})


def _require_chunks(subject_id: str, limit: int) -> List[ScoredChunk]:
    chunks = retrieval_engine.retrieve_all(subject_id)
    if not chunks:
        raise HTTPException(
            status_code=400,
            detail="No documents uploaded for this subject. Please upload notes first."
        )
    return chunks[:limit]


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "healthy",
        "service": "notewise-study-assistant",
        "version": "1.0.0"
    }


@app.post("/subjects/{subject_id}/documents", response_model=UploadResponse, status_code=201)
def upload_documents(subject_id: str, files: List[UploadFile] = File(...)) -> UploadResponse:
    """Extract, chunk, embed and store uploaded PDF/TXT files."""
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    results = []
    for upload in files:
        result = ingestion_service.ingest(subject_id, upload.filename or "upload", upload.file.read())
        results.append(UploadResult(
            file_name=result.file_name,
            document_id=result.document_id,
            chunk_count=result.chunk_count,
            embedded=result.embedded,
            error=result.error,
        ))
    return UploadResponse(results=results)


@app.post("/subjects/{subject_id}/ask", response_model=AnswerResponse)
def ask(subject_id: str, request: AskRequest) -> AnswerResponse:
    """
    Answer a question from the subject's notes.

    Retrieves relevant chunks, generates a grounded answer and attaches
    citations plus a confidence explanation.
    """
    question = request.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question is required")

    start_time = time.time()
    history = [Turn(role=t.role, content=t.content) for t in request.history[-HISTORY_TURN_LIMIT:]]

    try:
        chunks = retrieval_engine.retrieve(subject_id, question, DEFAULT_TOP_K)
        result = answer_synthesizer.generate_answer(question, chunks, request.subject_name, history)
    except BACKEND_ERRORS as e:
        raise _backend_error(e)

    logger.info(
        f"Answered question in {int((time.time() - start_time) * 1000)}ms "
        f"(chunks={len(chunks)}, not_found={result.not_found})",
        extra={"subject_id": subject_id},
    )
    return AnswerResponse.from_result(result)


@app.post("/subjects/{subject_id}/quiz", response_model=QuizResponse)
def quiz(subject_id: str, request: QuizRequest) -> QuizResponse:
    chunks = _require_chunks(subject_id, QUIZ_CHUNK_LIMIT)
    try:
        result = study_generator.generate_quiz(chunks, request.subject_name, request.difficulty)
    except BACKEND_ERRORS as e:
        raise _backend_error(e)
    return QuizResponse.from_result(result)


@app.post("/subjects/{subject_id}/flashcards", response_model=FlashcardsResponse)
def flashcards(subject_id: str, request: StudyRequest) -> FlashcardsResponse:
    chunks = _require_chunks(subject_id, FLASHCARD_CHUNK_LIMIT)
    try:
        cards = study_generator.generate_active_recall(chunks, request.subject_name)
    except BACKEND_ERRORS as e:
        raise _backend_error(e)
    return FlashcardsResponse.from_cards(cards)


@app.post("/subjects/{subject_id}/cheatsheet", response_model=CheatsheetResponse)
def cheatsheet(subject_id: str, request: StudyRequest) -> CheatsheetResponse:
    chunks = _require_chunks(subject_id, CHEATSHEET_CHUNK_LIMIT)
    try:
        markdown = study_generator.generate_cheatsheet(chunks, request.subject_name)
    except BACKEND_ERRORS as e:
        raise _backend_error(e)
    return CheatsheetResponse(cheatsheet=markdown)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting NoteWise Study Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
