"""Quiz Engines - Generation, scoring and lifecycle."""

from .lifecycle import QuizLifecycleManager, validate_quiz_id
from .quiz_engine import QuizEngine
from .scoring_engine import QuizScoringEngine

__all__ = ["QuizEngine", "QuizLifecycleManager", "QuizScoringEngine", "validate_quiz_id"]
