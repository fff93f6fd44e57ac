"""Quiz Exceptions - Error taxonomy shared by the pipeline and the HTTP layer."""

from __future__ import annotations

from typing import Any


class QuizServiceError(Exception):
    """Base error carrying a stable code, an HTTP status and details.

    Attributes:
        message: Human readable message
        code: Stable machine readable code (e.g. ``QUIZ_NOT_FOUND``)
        status_code: HTTP status used by the API layer
        details: Extra payload echoed in the error envelope
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


# =============================================================================
# INPUT / STATE ERRORS
# =============================================================================


class InvalidInputError(QuizServiceError):
    """Client mistake detected before any work starts."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(QuizServiceError):
    """Quiz, status or result is absent or expired."""

    code = "NOT_FOUND"
    status_code = 404


class QuizAlreadySubmittedError(QuizServiceError):
    """A result already exists for this quiz id."""

    code = "QUIZ_ALREADY_SUBMITTED"
    status_code = 409

    def __init__(self, quiz_id: str, existing: dict[str, Any]):
        super().__init__(
            "Quiz has already been submitted",
            details={
                "quizId": quiz_id,
                "submittedAt": existing.get("submittedAt"),
                "score": f"{existing.get('score')}/{existing.get('totalQuestions')}",
                "percentage": f"{existing.get('percentage')}%",
            },
        )


# =============================================================================
# GENERATION ERRORS
# =============================================================================


class QuizGenerationError(QuizServiceError):
    """Model output could not be turned into a valid quiz (terminal)."""

    code = "GENERATION_FAILED"
    status_code = 500


class CompletionError(QuizServiceError):
    """Transport level failure talking to the AI provider."""

    code = "AI_SERVICE_ERROR"
    status_code = 503

    # Network problems and 5xx responses are worth another attempt
    transient = True


class CompletionTimeoutError(CompletionError):
    code = "REQUEST_TIMEOUT"
    status_code = 504


class CompletionAPIError(CompletionError):
    """Provider answered with a non-2xx status."""

    def __init__(self, status: int, message: str):
        super().__init__(
            f"AI provider error: {status} - {message}",
            details={"status": status},
        )
        self.status = status
        self.transient = status >= 500


class InvalidCompletionResponseError(CompletionError):
    """2xx response without ``choices[0].message``."""

    transient = False
