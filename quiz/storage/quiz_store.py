"""Quiz Store - Redis-backed ephemeral storage with per-key TTL."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis

from ..models.state import ProcessingState
from ..models.enums import ProcessingStatus

if TYPE_CHECKING:
    from ..models.schemas import Quiz, SubmissionResult

logger = logging.getLogger(__name__)

# ProcessingState lifetimes (seconds)
PROCESSING_TTL = 300
COMPLETED_STATUS_TTL = 60
FAILED_STATUS_TTL = 300


class QuizStore:
    """Key/value store for quizzes, processing states and results.

    Every record is JSON with an expiry. Store failures propagate to the
    caller; only unreadable JSON is treated as absent.

    Estrutura de chaves:
        - quiz:{quiz_id} -> Quiz
        - quiz:{quiz_id}:processing -> ProcessingState
        - quiz:{quiz_id}:results -> SubmissionResult

    Example:
        >>> store = await QuizStore.connect("redis://localhost:6379", quiz_ttl=86400)
        >>> await store.set_json("quiz:abc", {"title": "Demo"}, ttl=60)
        >>> await store.get_json("quiz:abc")
        {'title': 'Demo'}
    """

    KEY_PREFIX = "quiz"

    def __init__(self, client: redis.Redis, quiz_ttl: int = 86400):
        """Inicializa store com um cliente Redis.

        Args:
            client: ``redis.asyncio.Redis`` created with ``decode_responses=True``
            quiz_ttl: Lifetime of quizzes and results (seconds)
        """
        self.client = client
        self.quiz_ttl = quiz_ttl

    @classmethod
    def from_url(
        cls,
        url: str,
        quiz_ttl: int = 86400,
        connect_timeout: float = 10.0,
        command_timeout: float = 5.0,
    ) -> "QuizStore":
        """Builds the store on a lazily connecting pool."""
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=connect_timeout,
            socket_timeout=command_timeout,
        )
        return cls(client, quiz_ttl=quiz_ttl)

    @classmethod
    async def connect(cls, url: str, **kwargs: Any) -> "QuizStore":
        """Like ``from_url`` but verifies the connection with PING."""
        store = cls.from_url(url, **kwargs)
        await store.ping()
        logger.info("Redis connected")
        return store

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis connection closed")

    # =========================================================================
    # KEYS
    # =========================================================================

    def _quiz_key(self, quiz_id: str) -> str:
        return f"{self.KEY_PREFIX}:{quiz_id}"

    def _processing_key(self, quiz_id: str) -> str:
        return f"{self.KEY_PREFIX}:{quiz_id}:processing"

    def _results_key(self, quiz_id: str) -> str:
        return f"{self.KEY_PREFIX}:{quiz_id}:results"

    # =========================================================================
    # GENERIC JSON OPERATIONS
    # =========================================================================

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        """Stores ``value`` as JSON expiring after ``ttl`` seconds."""
        await self.client.set(key, json.dumps(value), ex=ttl)
        logger.debug(f"Stored {key} (ttl={ttl}s)")

    async def get_json(self, key: str) -> Any | None:
        """Returns the decoded value, or None when absent or unreadable."""
        raw = await self.client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Invalid JSON stored at {key}: {e}")
            return None

    async def set_json_if_absent(self, key: str, value: Any, ttl: int) -> bool:
        """Atomic create (``SET NX EX``).

        Returns:
            True if this call created the key, False if it already existed
        """
        created = await self.client.set(key, json.dumps(value), ex=ttl, nx=True)
        return bool(created)

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(key))

    async def exists(self, key: str) -> bool:
        return bool(await self.client.exists(key))

    async def get_ttl(self, key: str) -> int:
        """Remaining lifetime in seconds (-2 absent, -1 no expiry)."""
        return await self.client.ttl(key)

    async def health_check(self) -> dict[str, Any]:
        """PING round trip, never raises."""
        start = time.perf_counter()
        try:
            await self.ping()
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return {"status": "unhealthy", "connected": False, "error": str(e)}
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        return {"status": "healthy", "connected": True, "latency": f"{latency_ms}ms"}

    # =========================================================================
    # TYPED HELPERS
    # =========================================================================

    async def save_quiz(self, quiz: Quiz) -> None:
        await self.set_json(self._quiz_key(quiz.id), quiz.to_json_dict(), self.quiz_ttl)

    async def load_quiz(self, quiz_id: str) -> dict[str, Any] | None:
        """Carrega quiz completo (with answer key).

        Returns:
            Quiz dict (camelCase) se encontrado, None caso contrário
        """
        data = await self.get_json(self._quiz_key(quiz_id))
        if data is None:
            logger.debug(f"Quiz não encontrado: {quiz_id}")
        return data

    async def save_processing_state(self, state: ProcessingState) -> None:
        """Persiste estado com a TTL do seu status."""
        if state.status == ProcessingStatus.COMPLETED:
            ttl = COMPLETED_STATUS_TTL
        elif state.status == ProcessingStatus.FAILED:
            ttl = FAILED_STATUS_TTL
        else:
            ttl = PROCESSING_TTL
        await self.set_json(self._processing_key(state.quiz_id), state.to_dict(), ttl)

    async def load_processing_state(self, quiz_id: str) -> ProcessingState | None:
        data = await self.get_json(self._processing_key(quiz_id))
        if not data:
            return None
        return ProcessingState.from_dict(data)

    async def save_results_if_absent(self, result: SubmissionResult) -> bool:
        """Writes the single allowed result; False if one already exists."""
        return await self.set_json_if_absent(
            self._results_key(result.quiz_id), result.to_json_dict(), self.quiz_ttl
        )

    async def load_results(self, quiz_id: str) -> dict[str, Any] | None:
        return await self.get_json(self._results_key(quiz_id))
