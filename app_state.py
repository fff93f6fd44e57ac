"""Core module - shared quiz services, rate limiter and lifecycle helpers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from config import AppConfig, get_config
from quiz.engine import QuizEngine, QuizLifecycleManager, QuizScoringEngine
from quiz.llm import CompletionClient, SearchToolAdapter
from quiz.storage import QuizStore

if TYPE_CHECKING:
    from quiz.llm import CompletionProvider

logger = logging.getLogger(__name__)

# =============================================================================
# RATE LIMITING
# =============================================================================

limiter = Limiter(key_func=get_remote_address, enabled=get_config().rate_limit_enabled)


def quiz_generation_limit() -> str:
    return f"{get_config().quizzes_per_minute}/minute"


def api_request_limit() -> str:
    return f"{get_config().api_requests_per_minute}/minute"


# =============================================================================
# SINGLETONS
# =============================================================================

# Built once at startup and shared by every request and background job
config: Optional[AppConfig] = None
store: Optional[QuizStore] = None
completion: Optional[CompletionProvider] = None
search: Optional[SearchToolAdapter] = None
lifecycle: Optional[QuizLifecycleManager] = None

# Resources created here (not injected) and closed on cleanup
_owned: list[Any] = []


async def init(
    app_config: Optional[AppConfig] = None,
    quiz_store: Optional[QuizStore] = None,
    completion_provider: Optional[CompletionProvider] = None,
    search_adapter: Optional[SearchToolAdapter] = None,
) -> QuizLifecycleManager:
    """Builds the service graph.

    Any collaborator can be injected (tests pass in-memory fakes); the
    missing ones are created from configuration.

    Args:
        app_config: Settings (defaults to ``get_config()``)
        quiz_store: Store instance; otherwise Redis from ``REDIS_URL``
        completion_provider: Anything with ``async complete(body)``
        search_adapter: Search tool; otherwise built from ``TAVILY_API_KEY``

    Returns:
        The lifecycle manager used by the HTTP layer
    """
    global config, store, completion, search, lifecycle

    config = app_config or get_config()

    if quiz_store is None:
        quiz_store = QuizStore.from_url(
            config.redis_url,
            quiz_ttl=config.quiz_ttl,
            connect_timeout=config.redis_connect_timeout,
            command_timeout=config.redis_command_timeout,
        )
        _owned.append(quiz_store)
        try:
            await quiz_store.ping()
            logger.info("Redis connected")
        except Exception as e:
            if config.is_production:
                raise
            logger.warning(f"Redis unavailable, continuing in {config.environment} mode: {e}")

    if completion_provider is None:
        completion_provider = CompletionClient.from_config(config)
        _owned.append(completion_provider)

    if search_adapter is None:
        search_adapter = SearchToolAdapter.from_config(config)
        _owned.append(search_adapter)

    store = quiz_store
    completion = completion_provider
    search = search_adapter
    engine = QuizEngine(completion=completion, search=search, config=config)
    lifecycle = QuizLifecycleManager(store, engine, QuizScoringEngine(), config)

    logger.info(
        f"Quiz services ready (model={config.openrouter_model}, search={'on' if search.enabled else 'off'})"
    )
    return lifecycle


def get_lifecycle() -> QuizLifecycleManager:
    """Get the lifecycle manager (``init`` must have run)."""
    if lifecycle is None:
        raise RuntimeError("Quiz services are not initialised")
    return lifecycle


async def cleanup():
    """Cleanup resources on shutdown.

    Cancels running generation jobs first, then closes the HTTP clients
    and the Redis pool created by ``init``.
    """
    global store, completion, search, lifecycle

    if lifecycle is not None:
        await lifecycle.shutdown()

    while _owned:
        resource = _owned.pop()
        closer = getattr(resource, "aclose", None) or getattr(resource, "close")
        try:
            await closer()
        except Exception as e:
            logger.warning(f"Error closing {type(resource).__name__}: {e}")

    store = completion = search = lifecycle = None
