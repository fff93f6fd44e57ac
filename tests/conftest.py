# =============================================================================
# CONFTEST - Fixtures compartilhadas para todos os testes
# =============================================================================
# Redis em memória (com TTL), provider de completions falso e dados de exemplo
# =============================================================================

import copy
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

QUIZ_ID = "3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b"


# =============================================================================
# FIXTURES DE CONFIGURAÇÃO
# =============================================================================


@pytest.fixture
def test_config():
    """AppConfig determinística para testes."""
    from config import AppConfig

    return AppConfig(
        environment="test",
        openrouter_api_key="test-key-123",
        openrouter_model="test/model",
        tavily_api_key="",
        min_questions=3,
        max_questions=20,
        max_file_size=1024,
        max_files_count=2,
        rate_limit_enabled=False,
    )


# =============================================================================
# FIXTURES DO REDIS
# =============================================================================


@pytest.fixture
def mock_redis():
    """Mock do redis.asyncio.Redis com armazenamento e TTL em memória.

    ``mock_redis.advance(seconds)`` avança o relógio e expira chaves.
    """
    mock = MagicMock()
    _storage: dict[str, str] = {}
    _expires_at: dict[str, float] = {}
    clock = {"now": 0.0}

    def _purge():
        for key in [k for k, t in _expires_at.items() if t <= clock["now"]]:
            _storage.pop(key, None)
            _expires_at.pop(key, None)

    async def mock_get(key):
        _purge()
        return _storage.get(key)

    async def mock_set(key, value, ex=None, nx=False):
        _purge()
        if nx and key in _storage:
            return None
        _storage[key] = value
        if ex is not None:
            _expires_at[key] = clock["now"] + ex
        else:
            _expires_at.pop(key, None)
        return True

    async def mock_delete(*keys):
        _purge()
        removed = 0
        for key in keys:
            if _storage.pop(key, None) is not None:
                removed += 1
            _expires_at.pop(key, None)
        return removed

    async def mock_exists(*keys):
        _purge()
        return sum(1 for key in keys if key in _storage)

    async def mock_ttl(key):
        _purge()
        if key not in _storage:
            return -2
        if key not in _expires_at:
            return -1
        return int(_expires_at[key] - clock["now"])

    def advance(seconds):
        clock["now"] += seconds
        _purge()

    mock.get = AsyncMock(side_effect=mock_get)
    mock.set = AsyncMock(side_effect=mock_set)
    mock.delete = AsyncMock(side_effect=mock_delete)
    mock.exists = AsyncMock(side_effect=mock_exists)
    mock.ttl = AsyncMock(side_effect=mock_ttl)
    mock.ping = AsyncMock(return_value=True)
    mock.aclose = AsyncMock()
    mock.advance = advance
    mock._storage = _storage

    return mock


@pytest.fixture
def quiz_store(mock_redis, test_config):
    """QuizStore sobre o Redis em memória."""
    from quiz.storage.quiz_store import QuizStore

    return QuizStore(mock_redis, quiz_ttl=test_config.quiz_ttl)


# =============================================================================
# FIXTURES DO PROVIDER DE COMPLETIONS
# =============================================================================


class FakeCompletionProvider:
    """CompletionProvider que devolve respostas enfileiradas e grava os requests."""

    def __init__(self, responses: list[Any] | None = None):
        self.responses = list(responses or [])
        self.requests: list[dict[str, Any]] = []

    async def complete(self, request_body: dict[str, Any]) -> dict[str, Any]:
        self.requests.append(copy.deepcopy(request_body))
        if not self.responses:
            raise AssertionError("No fake completion response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def completion_response(content: str | None = None, tool_calls: list | None = None) -> dict:
    """Monta um corpo de resposta de chat completion."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {"id": "gen-123", "choices": [{"index": 0, "message": message}]}


def tool_call(name: str = "web_search", arguments: str = '{"query": "latest research"}', call_id: str = "call_1") -> dict:
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


@pytest.fixture
def fake_completion():
    """Provider falso sem respostas; os testes enfileiram as suas."""
    return FakeCompletionProvider()


@pytest.fixture
def make_response():
    """Factory de corpos de chat completion."""
    return completion_response


@pytest.fixture
def make_tool_call():
    """Factory de tool calls no formato do provider."""
    return tool_call


@pytest.fixture
def mock_search():
    """Mock do SearchToolAdapter."""
    from quiz.llm.search import SearchToolAdapter

    mock = MagicMock(spec=SearchToolAdapter)
    mock.TOOL_NAME = SearchToolAdapter.TOOL_NAME
    mock.enabled = True
    mock.tool_definition = SearchToolAdapter().tool_definition
    mock.search = AsyncMock(return_value=json.dumps([{"title": "Result", "content": "Fresh fact"}]))
    return mock


# =============================================================================
# FIXTURES DE DADOS
# =============================================================================


@pytest.fixture
def sample_quiz_payload():
    """Saída bem formada do modelo (formato estruturado)."""
    return {
        "quiz": {
            "title": "Photosynthesis Basics",
            "description": "Covers light and dark reactions",
            "questions": [
                {
                    "id": "q1",
                    "question": "Where does photosynthesis take place?",
                    "options": ["Mitochondria", "Chloroplast", "Nucleus", "Ribosome"],
                    "correctAnswer": 1,
                    "explanation": "Chloroplasts contain chlorophyll.",
                    "topic": "Cell biology",
                },
                {
                    "id": "q2",
                    "question": "Which gas is released during photosynthesis?",
                    "options": ["Oxygen", "Nitrogen", "Carbon dioxide", "Helium"],
                    "correctAnswer": 0,
                    "explanation": "Water splitting releases oxygen.",
                    "topic": "Light reactions",
                },
                {
                    "id": "q3",
                    "question": "What is the main product of the Calvin cycle?",
                    "options": ["ATP", "NADPH", "Glucose precursors", "Water"],
                    "correctAnswer": 2,
                    "explanation": "The Calvin cycle fixes carbon into sugars.",
                    "topic": "Dark reactions",
                },
            ],
            "metadata": {"totalQuestions": 99, "estimatedDuration": 6, "topics": ["Photosynthesis"]},
        }
    }


@pytest.fixture
def sample_document():
    """PDF enviado (conteúdo irrelevante para o provider falso)."""
    from quiz.models.schemas import UploadedDocument

    return UploadedDocument(name="biology.pdf", content_type="application/pdf", data=b"%PDF-1.4 test")


@pytest.fixture
def stored_quiz(sample_quiz_payload):
    """Quiz como salvo no store (camelCase, com gabarito)."""
    quiz = copy.deepcopy(sample_quiz_payload["quiz"])
    quiz.update(
        id=QUIZ_ID,
        createdAt="2026-01-01T00:00:00.000Z",
        sourceFiles=[{"name": "biology.pdf", "size": 13, "type": "application/pdf"}],
        metadata={
            "totalQuestions": 3,
            "estimatedDuration": 6,
            "topics": ["Photosynthesis"],
            "sourceFiles": ["biology.pdf"],
            "pdfSize": 13,
            "pdfCount": 1,
            "model": "test/model",
            "pdfProcessingEngine": "native",
        },
    )
    return quiz


@pytest.fixture
def quiz_id():
    return QUIZ_ID
