"""Quiz Router - Endpoints FastAPI."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

import app_state

from .engine.lifecycle import QuizLifecycleManager
from .exceptions import InvalidInputError
from .models.schemas import GenerationOptions, SubmitQuizRequest, UploadedDocument
from .responses import create_success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["Quiz"])

limiter = app_state.limiter


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================


def get_lifecycle() -> QuizLifecycleManager:
    """Dependency para obter o QuizLifecycleManager configurado."""
    return app_state.get_lifecycle()


def _parse_question_count(raw: Optional[str], lifecycle: QuizLifecycleManager) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        config = lifecycle.config
        raise InvalidInputError(
            f"Question count must be between {config.min_questions} and {config.max_questions}",
            code="INVALID_QUESTION_COUNT",
            details={"min": config.min_questions, "max": config.max_questions, "provided": raw},
        )


async def _read_uploads(files: list[UploadFile], max_size: int) -> list[UploadedDocument]:
    """Reads at most ``max_size + 1`` bytes per file; oversize is caught by validation."""
    documents = []
    for upload in files:
        data = await upload.read(max_size + 1)
        await upload.close()
        documents.append(
            UploadedDocument(
                name=upload.filename or "document.pdf",
                content_type=upload.content_type or "application/octet-stream",
                data=data,
            )
        )
    return documents


# =============================================================================
# GENERATION
# =============================================================================


@router.post("/generate", status_code=202)
@limiter.limit(app_state.quiz_generation_limit)
async def generate_quiz(
    request: Request,
    pdfs: list[UploadFile] = File(default=[]),
    useSearch: bool = Form(False),
    language: str = Form("en"),
    includeExplanations: bool = Form(True),
    questionCount: Optional[str] = Form(None),
    difficulty: str = Form("mixed"),
    topics: Optional[str] = Form(None),
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    """Aceita os PDFs e inicia a geração em background.

    Responde 202 assim que o estado ``uploaded`` é gravado; o cliente
    acompanha o progresso em ``GET /quiz/processing/{quiz_id}``.
    """
    config = lifecycle.config
    lifecycle.validate_file_count(len(pdfs))
    options = GenerationOptions(
        language=language,
        include_explanations=includeExplanations,
        min_questions=config.min_questions,
        max_questions=config.max_questions,
        question_count=_parse_question_count(questionCount, lifecycle),
        difficulty=difficulty,
        topics=[t.strip() for t in topics.split(",") if t.strip()] if topics else [],
        use_search=useSearch,
    )
    documents = await _read_uploads(pdfs, config.max_file_size)

    quiz_id = await lifecycle.start_generation(documents, options)
    return create_success(
        {"quizId": quiz_id, "status": "uploaded"},
        "Quiz generation started",
    )


@router.get("/processing/{quiz_id}")
async def get_processing_status(
    quiz_id: str,
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    """Estado do job de geração (uploaded, processing, completed, failed)."""
    state = await lifecycle.get_processing_state(quiz_id)
    return create_success(state, "Processing status retrieved")


# =============================================================================
# QUIZ
# =============================================================================


@router.get("/{quiz_id}")
async def get_quiz(
    quiz_id: str,
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    """Quiz sem gabarito (sem correctAnswer nem explanation)."""
    quiz = await lifecycle.get_quiz(quiz_id)
    return create_success(quiz, "Quiz retrieved successfully")


@router.post("/{quiz_id}/submit")
@limiter.limit(app_state.api_request_limit)
async def submit_quiz(
    request: Request,
    quiz_id: str,
    submission: SubmitQuizRequest,
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    """Corrige a única tentativa permitida para o quiz."""
    result = await lifecycle.submit(quiz_id, submission.answers, submission.time_taken)
    return create_success(result, "Quiz submitted successfully")


@router.get("/{quiz_id}/results")
async def get_quiz_results(
    quiz_id: str,
    lifecycle: QuizLifecycleManager = Depends(get_lifecycle),
):
    """Resultado salvo; ``found: false`` quando ainda não houve submissão."""
    results = await lifecycle.get_results(quiz_id)
    message = "Results retrieved successfully" if results["found"] else "No results submitted yet"
    return create_success(results, message)
