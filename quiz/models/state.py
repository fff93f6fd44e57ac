"""Quiz State - Processing state of a generation job."""

from dataclasses import dataclass, field
from typing import Any

from ..responses import utc_now_iso
from .enums import ProcessingStatus


@dataclass
class ProcessingState:
    """Ephemeral status record used by clients to poll a generation job.

    Attributes:
        quiz_id: Quiz identifier the job will produce
        status: Current state (uploaded, processing, completed, failed)
        started_at: When the upload was accepted
        options: Generation options requested by the client
        file_count: Number of uploaded documents
        total_size: Sum of document sizes in bytes
        files: Name/size of each document
        completed_at: Set on ``completed``
        error: Failure message, set on ``failed``
        failed_at: Set on ``failed``
    """

    quiz_id: str
    status: ProcessingStatus = ProcessingStatus.UPLOADED
    started_at: str = field(default_factory=utc_now_iso)
    options: dict[str, Any] = field(default_factory=dict)
    file_count: int = 0
    total_size: int = 0
    files: list[dict[str, Any]] = field(default_factory=list)
    completed_at: str | None = None
    error: str | None = None
    failed_at: str | None = None

    def _transition(self, target: ProcessingStatus) -> None:
        if self.status.is_terminal:
            raise ValueError(
                f"Quiz {self.quiz_id} is already {self.status.value}, cannot move to {target.value}"
            )
        self.status = target

    def mark_processing(self) -> None:
        self._transition(ProcessingStatus.PROCESSING)

    def mark_completed(self) -> None:
        self._transition(ProcessingStatus.COMPLETED)
        self.completed_at = utc_now_iso()

    def mark_failed(self, error: str) -> None:
        self._transition(ProcessingStatus.FAILED)
        self.error = error
        self.failed_at = utc_now_iso()

    def to_dict(self) -> dict[str, Any]:
        """Wire/storage form (camelCase, only the fields of the current state)."""
        data: dict[str, Any] = {
            "quizId": self.quiz_id,
            "status": self.status.value,
            "startedAt": self.started_at,
            "options": self.options,
            "fileCount": self.file_count,
            "totalSize": self.total_size,
            "files": self.files,
        }
        if self.status == ProcessingStatus.COMPLETED:
            data["completedAt"] = self.completed_at
        elif self.status == ProcessingStatus.FAILED:
            data["error"] = self.error
            data["failedAt"] = self.failed_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessingState":
        return cls(
            quiz_id=data["quizId"],
            status=ProcessingStatus(data.get("status", ProcessingStatus.UPLOADED.value)),
            started_at=data.get("startedAt") or utc_now_iso(),
            options=data.get("options", {}),
            file_count=data.get("fileCount", 0),
            total_size=data.get("totalSize", 0),
            files=data.get("files", []),
            completed_at=data.get("completedAt"),
            error=data.get("error"),
            failed_at=data.get("failedAt"),
        )
