"""Quiz Storage - Redis persistence."""

from .quiz_store import QuizStore

__all__ = ["QuizStore"]
