"""Quiz Schemas - Pydantic models for the stored quiz and API payloads.

Fields are snake_case in Python and camelCase on the wire
(``correct_answer`` <-> ``correctAnswer``). Dump with ``by_alias=True``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import Performance


class CamelModel(BaseModel):
    """Base model speaking camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# QUIZ
# =============================================================================


class Question(CamelModel):
    """One multiple-choice item."""

    id: str = Field(..., description="Identifier unique within the quiz (q1, q2, ...)")
    question: str = Field(..., min_length=1, description="Question text")
    options: list[str] = Field(..., min_length=4, max_length=4, description="Exactly 4 options")
    correct_answer: int = Field(..., ge=0, le=3, description="Index of the correct option (0-3)")
    explanation: str | None = Field(None, description="Why the correct option is right")
    topic: str | None = Field(None, description="Topic label")
    difficulty: str | None = Field(None, description="Difficulty when supplied by the model")


class ClientQuestion(CamelModel):
    """Question as seen by the answering client (answer key stripped)."""

    id: str
    question: str
    options: list[str]
    topic: str | None = None
    difficulty: str | None = None


class SourceFile(CamelModel):
    name: str
    size: int
    type: str
    uploaded_at: str | None = None


class QuizMetadata(CamelModel):
    """Derived facts about a quiz; counts are recomputed, never trusted."""

    total_questions: int = Field(..., ge=1)
    estimated_duration: int = Field(..., ge=1, description="Minutes")
    topics: list[str] = Field(default_factory=list)
    source_files: list[str] = Field(default_factory=list)
    pdf_size: int = 0
    pdf_count: int = 0
    generated_at: str | None = None
    model: str | None = None
    pdf_processing_engine: str | None = None


class Quiz(CamelModel):
    """Generated quiz. Immutable once stored."""

    id: str | None = None
    title: str = "Generated Quiz"
    description: str = ""
    questions: list[Question] = Field(..., min_length=1)
    metadata: QuizMetadata
    created_at: str | None = None
    source_files: list[SourceFile] = Field(default_factory=list)

    def redacted(self) -> dict[str, Any]:
        """Client view: no ``correctAnswer`` and no explanation."""
        data = self.to_json_dict()
        data["questions"] = [
            ClientQuestion(
                id=q.id,
                question=q.question,
                options=q.options,
                topic=q.topic,
                difficulty=q.difficulty,
            ).to_json_dict()
            for q in self.questions
        ]
        return data


# =============================================================================
# GENERATION
# =============================================================================


class GenerationOptions(CamelModel):
    """Options requested at upload time."""

    language: str = Field(default="en", max_length=32)
    include_explanations: bool = True
    min_questions: int = Field(default=5, ge=1)
    max_questions: int = Field(default=50, ge=1)
    question_count: int | None = Field(default=None, description="Preferred count, within bounds")
    difficulty: str = "mixed"
    topics: list[str] = Field(default_factory=list)
    use_search: bool = False


class UploadedDocument(CamelModel):
    """Raw upload handed to the lifecycle manager."""

    name: str
    content_type: str
    data: bytes = Field(..., repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


# =============================================================================
# SUBMISSION
# =============================================================================


class SubmitQuizRequest(CamelModel):
    """Body of POST /quiz/{quiz_id}/submit."""

    answers: list[int | None] = Field(..., description="Chosen option index per question (null = skipped)")
    time_taken: float | None = Field(default=None, ge=0, description="Seconds, client reported")


class QuestionResult(CamelModel):
    question_id: str
    user_answer: int | None
    correct_answer: int
    is_correct: bool
    question: str
    options: list[str]
    explanation: str | None = None
    topic: str | None = None
    difficulty: str | None = None


class SubmissionResult(CamelModel):
    """Scored outcome of the single allowed attempt."""

    quiz_id: str
    submitted_at: str
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    score: int
    percentage: int
    time_taken: float | None = None
    performance: Performance
    question_results: list[QuestionResult]
