"""Quiz Module - PDF to multiple-choice quiz pipeline.

Arquitetura:
- models/: Enums, Schemas Pydantic, ProcessingState
- engine/: QuizEngine (geração), QuizScoringEngine, QuizLifecycleManager
- llm/: CompletionClient, Conversation messages, SearchToolAdapter
- storage/: QuizStore (Redis com TTL)
- prompts/: System prompt e schema de saída estruturada
- router.py: FastAPI endpoints
"""

from .engine import QuizEngine, QuizLifecycleManager, QuizScoringEngine
from .exceptions import QuizServiceError
from .llm import CompletionClient, SearchToolAdapter
from .models import Performance, ProcessingState, ProcessingStatus, Question, Quiz
from .storage import QuizStore

__all__ = [
    # Models
    "Performance",
    "ProcessingState",
    "ProcessingStatus",
    "Question",
    "Quiz",
    # Engines
    "QuizEngine",
    "QuizLifecycleManager",
    "QuizScoringEngine",
    # LLM
    "CompletionClient",
    "SearchToolAdapter",
    # Storage
    "QuizStore",
    # Errors
    "QuizServiceError",
]
