"""Quiz Enums - Processing status and performance bands."""

from enum import Enum


class ProcessingStatus(str, Enum):
    """Generation job states (uploaded -> processing -> completed | failed)."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


class Performance(str, Enum):
    """Performance bands derived from the rounded percentage."""

    EXCELLENT = "excellent"  # >= 80
    GOOD = "good"  # >= 60
    AVERAGE = "average"  # >= 40
    NEEDS_IMPROVEMENT = "needs_improvement"  # < 40
