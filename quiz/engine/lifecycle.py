"""Quiz Lifecycle Manager - Generation jobs, reads and exactly-once submission."""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from typing import TYPE_CHECKING, Any

from ..exceptions import (
    InvalidInputError,
    NotFoundError,
    QuizAlreadySubmittedError,
    QuizServiceError,
)
from ..models.schemas import GenerationOptions, Quiz, UploadedDocument
from ..models.state import ProcessingState

if TYPE_CHECKING:
    from config import AppConfig

    from ..storage.quiz_store import QuizStore
    from .quiz_engine import QuizEngine
    from .scoring_engine import QuizScoringEngine

logger = logging.getLogger(__name__)

QUIZ_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def validate_quiz_id(quiz_id: str) -> str:
    """Rejects identifiers that are not UUIDs."""
    if not quiz_id or not QUIZ_ID_PATTERN.match(quiz_id):
        raise InvalidInputError("Invalid quiz ID format", code="INVALID_QUIZ_ID")
    return quiz_id


class QuizLifecycleManager:
    """Owns every quiz-id keyed state transition.

    ``start_generation`` answers as soon as the ``uploaded`` state is stored;
    the generation itself runs on a background task that moves the state to
    ``processing`` and then ``completed`` or ``failed``. Tasks are referenced
    until they finish so they are not garbage collected mid-flight.

    Example:
        >>> manager = QuizLifecycleManager(store, engine, QuizScoringEngine(), config)
        >>> quiz_id = await manager.start_generation([document], GenerationOptions())
        >>> (await manager.get_processing_state(quiz_id))["status"]
        'uploaded'
    """

    def __init__(
        self,
        store: QuizStore,
        engine: QuizEngine,
        scoring: QuizScoringEngine,
        config: AppConfig,
    ):
        self.store = store
        self.engine = engine
        self.scoring = scoring
        self.config = config
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_file_count(self, count: int) -> None:
        """Checks the number of uploads; runs before any file is read."""
        if count == 0:
            raise InvalidInputError(
                "No PDF files uploaded",
                code="FILES_REQUIRED",
                details={"supportedFormats": self.config.allowed_file_types},
            )

        max_files = self.config.max_files_count
        if count > max_files:
            raise InvalidInputError(
                f"File count must be between 1 and {max_files}",
                code="INVALID_FILE_COUNT",
                details={"min": 1, "max": max_files, "provided": count},
            )

    def validate_uploads(self, documents: list[UploadedDocument]) -> None:
        """Checks count, MIME type and size against configured limits."""
        self.validate_file_count(len(documents))

        for document in documents:
            if document.content_type not in self.config.allowed_file_types:
                raise InvalidInputError(
                    f"File type {document.content_type} not supported. "
                    f"Allowed types: {', '.join(self.config.allowed_file_types)}",
                    code="UNSUPPORTED_FILE_TYPE",
                    status_code=415,
                    details={"file": document.name, "allowedTypes": self.config.allowed_file_types},
                )
            if document.size > self.config.max_file_size:
                raise InvalidInputError(
                    f"File {document.name} exceeds the maximum size of {self.config.max_file_size} bytes",
                    code="FILE_TOO_LARGE",
                    status_code=413,
                    details={
                        "file": document.name,
                        "size": document.size,
                        "maxFileSize": self.config.max_file_size,
                    },
                )

    def validate_options(self, options: GenerationOptions) -> None:
        count = options.question_count
        low, high = self.config.min_questions, self.config.max_questions
        if count is not None and not low <= count <= high:
            raise InvalidInputError(
                f"Question count must be between {low} and {high}",
                code="INVALID_QUESTION_COUNT",
                details={"min": low, "max": high, "provided": count},
            )

    # =========================================================================
    # GENERATION
    # =========================================================================

    async def start_generation(
        self, documents: list[UploadedDocument], options: GenerationOptions
    ) -> str:
        """Validates the upload, stores ``uploaded`` and schedules generation.

        Returns:
            The new quiz id (the quiz itself is not ready yet)
        """
        self.validate_uploads(documents)
        self.validate_options(options)

        quiz_id = str(uuid.uuid4())
        state = ProcessingState(
            quiz_id=quiz_id,
            options=options.to_json_dict(),
            file_count=len(documents),
            total_size=sum(document.size for document in documents),
            files=[{"name": document.name, "size": document.size} for document in documents],
        )
        await self.store.save_processing_state(state)

        task = asyncio.create_task(
            self._run_generation(state, documents, options), name=f"quiz-generation-{quiz_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(f"[Quiz {quiz_id}] Upload accepted ({len(documents)} file(s)), generation scheduled")
        return quiz_id

    async def _run_generation(
        self,
        state: ProcessingState,
        documents: list[UploadedDocument],
        options: GenerationOptions,
    ) -> None:
        """Background job; records ``failed`` instead of raising."""
        quiz_id = state.quiz_id
        try:
            state.mark_processing()
            await self.store.save_processing_state(state)

            quiz = await self.engine.generate(documents, options, quiz_id=quiz_id)
            await self.store.save_quiz(quiz)

            state.mark_completed()
            await self.store.save_processing_state(state)
            logger.info(f"[Quiz {quiz_id}] Quiz generated successfully ({len(quiz.questions)} questions)")
        except Exception as e:
            message = e.message if isinstance(e, QuizServiceError) else str(e)
            logger.error(f"[Quiz {quiz_id}] Generation failed: {message}", exc_info=True)
            await self._record_failure(state, message or type(e).__name__)

    async def _record_failure(self, state: ProcessingState, message: str) -> None:
        if state.status.is_terminal:
            # Quiz was stored; only the final status write failed
            return
        state.mark_failed(message)
        try:
            await self.store.save_processing_state(state)
        except Exception as e:
            logger.error(f"[Quiz {state.quiz_id}] Could not record failed state: {e}")

    # =========================================================================
    # READS
    # =========================================================================

    async def get_processing_state(self, quiz_id: str) -> dict[str, Any]:
        state = await self.store.load_processing_state(quiz_id)
        if state is None:
            raise NotFoundError("Processing status not found", code="STATUS_NOT_FOUND")
        return state.to_dict()

    async def get_quiz(self, quiz_id: str) -> dict[str, Any]:
        """Quiz as shown to the answering client (answer key removed)."""
        validate_quiz_id(quiz_id)
        data = await self.store.load_quiz(quiz_id)
        if data is None:
            raise NotFoundError(
                "Quiz not found or expired", code="QUIZ_NOT_FOUND", details={"quizId": quiz_id}
            )
        return Quiz.model_validate(data).redacted()

    async def get_results(self, quiz_id: str) -> dict[str, Any]:
        """Stored result, or ``{found: False}`` when nothing was submitted."""
        results = await self.store.load_results(quiz_id)
        if results is None:
            return {"found": False, "quizId": quiz_id}
        return {"found": True, **results}

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def submit(
        self,
        quiz_id: str,
        answers: list[int | None],
        time_taken: float | None = None,
    ) -> dict[str, Any]:
        """Scores the single allowed attempt.

        Args:
            quiz_id: Quiz identifier
            answers: Chosen option index per question (None = skipped)
            time_taken: Client reported seconds

        Returns:
            SubmissionResult payload plus ``suggestions``

        Raises:
            NotFoundError: Quiz absent or expired (QUIZ_NOT_FOUND)
            QuizAlreadySubmittedError: A result already exists
            InvalidInputError: Answer count differs from question count
        """
        quiz = await self.store.load_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(
                "Quiz not found or expired", code="QUIZ_NOT_FOUND", details={"quizId": quiz_id}
            )

        existing = await self.store.load_results(quiz_id)
        if existing is not None:
            raise QuizAlreadySubmittedError(quiz_id, existing)

        expected = len(quiz["questions"])
        if len(answers) != expected:
            raise InvalidInputError(
                f"Expected {expected} answers, received {len(answers)}",
                code="ANSWER_COUNT_MISMATCH",
                details={"expected": expected, "received": len(answers)},
            )

        result = self.scoring.calculate_results(quiz, answers, time_taken)
        if not await self.store.save_results_if_absent(result):
            # Another submission won the race between the check and the write
            winner = await self.store.load_results(quiz_id) or result.to_json_dict()
            raise QuizAlreadySubmittedError(quiz_id, winner)

        logger.info(
            f"[Quiz {quiz_id}] Submitted - Score: {result.score}/{result.total_questions} ({result.percentage}%)"
        )
        return {
            **result.to_json_dict(),
            "suggestions": self.scoring.suggestions_for(result.percentage),
        }

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    async def shutdown(self) -> None:
        """Cancels generation jobs still running at process stop."""
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} running generation job(s)")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
