"""Quiz Models - Enums, Schemas and State."""

from .enums import Performance, ProcessingStatus
from .schemas import (
    ClientQuestion,
    GenerationOptions,
    Question,
    QuestionResult,
    Quiz,
    QuizMetadata,
    SourceFile,
    SubmissionResult,
    SubmitQuizRequest,
    UploadedDocument,
)
from .state import ProcessingState

__all__ = [
    # Enums
    "Performance",
    "ProcessingStatus",
    # Schemas
    "ClientQuestion",
    "GenerationOptions",
    "Question",
    "QuestionResult",
    "Quiz",
    "QuizMetadata",
    "SourceFile",
    "SubmissionResult",
    "SubmitQuizRequest",
    "UploadedDocument",
    # State
    "ProcessingState",
]
