# =============================================================================
# CONFIGURATION - Synapse Quiz Server
# =============================================================================
# Centralized settings loaded from environment variables (.env supported).
# Out-of-range or malformed values fall back to their defaults.
# =============================================================================

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Optional

from dotenv import load_dotenv

# -----------------------------------------------------------------------------
# Parsing helpers
# -----------------------------------------------------------------------------


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() == "true"


def _parse_int(
    value: Optional[str],
    default: int,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if min_value is not None and parsed < min_value:
        return default
    if max_value is not None and parsed > max_value:
        return default
    return parsed


def _parse_float(
    value: Optional[str],
    default: float,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if min_value is not None and parsed < min_value:
        return default
    if max_value is not None and parsed > max_value:
        return default
    return parsed


def _parse_list(value: Optional[str], default: list[str]) -> list[str]:
    if not value:
        return list(default)
    items = [item.strip() for item in value.split(",")]
    return [item for item in items if item] or list(default)


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------


@dataclass
class AppConfig:
    """Process-wide settings consumed by the quiz pipeline.

    Build it with ``AppConfig.from_env()``; construct directly in tests.
    Timeouts coming from the environment are milliseconds (as the frontend
    and deployment files express them) and are exposed in seconds.
    """

    # Server
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000

    # AI provider (OpenRouter-compatible chat completions)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "google/gemini-2.5-flash"
    pdf_processing_engine: str = "native"
    temperature: float = 0.3
    max_tokens: int = 4000
    completion_timeout: float = 120.0
    max_retries: int = 2

    # Web search
    tavily_api_key: str = ""
    tavily_base_url: str = "https://api.tavily.com"

    # Store
    redis_url: str = "redis://localhost:6379"
    redis_connect_timeout: float = 10.0
    redis_command_timeout: float = 5.0

    # Quiz
    min_questions: int = 5
    max_questions: int = 50
    quiz_ttl: int = 86400

    # Upload limits
    max_file_size: int = 10 * 1024 * 1024
    max_files_count: int = 5
    allowed_file_types: list[str] = field(default_factory=lambda: ["application/pdf"])

    # Rate limiting
    rate_limit_enabled: bool = True
    quizzes_per_minute: int = 2
    api_requests_per_minute: int = 50

    # Security
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    # Logging
    log_level: str = "INFO"
    debug_mode: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Reads settings from ``os.environ``."""
        env = os.environ
        return cls(
            environment=env.get("ENVIRONMENT", "development").lower(),
            host=env.get("HOST", "0.0.0.0"),
            port=_parse_int(env.get("PORT"), 3000, 1, 65535),
            openrouter_api_key=env.get("OPENROUTER_API_KEY", ""),
            openrouter_base_url=env.get("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
            openrouter_model=env.get("OPENROUTER_MODEL", "google/gemini-2.5-flash"),
            pdf_processing_engine=env.get("PDF_PROCESSING_ENGINE", "native"),
            temperature=_parse_float(env.get("MCQ_TEMPERATURE"), 0.3, 0.0, 1.0),
            max_tokens=_parse_int(env.get("MCQ_MAX_TOKENS"), 4000, 100, 8000),
            completion_timeout=_parse_int(env.get("OPENROUTER_TIMEOUT"), 120000, 30000, 300000) / 1000,
            max_retries=_parse_int(env.get("OPENROUTER_MAX_RETRIES"), 2, 0, 5),
            tavily_api_key=env.get("TAVILY_API_KEY", ""),
            tavily_base_url=env.get("TAVILY_BASE_URL", "https://api.tavily.com").rstrip("/"),
            redis_url=env.get("REDIS_URL", "redis://localhost:6379"),
            redis_connect_timeout=_parse_int(env.get("REDIS_CONNECT_TIMEOUT"), 10000, 1000) / 1000,
            redis_command_timeout=_parse_int(env.get("REDIS_COMMAND_TIMEOUT"), 5000, 1000) / 1000,
            min_questions=_parse_int(env.get("MIN_QUIZ_LENGTH"), 5, 1, 50),
            max_questions=_parse_int(env.get("MAX_QUIZ_LENGTH"), 50, 10, 100),
            quiz_ttl=_parse_int(env.get("QUIZ_TTL"), 86400, 3600, 604800),
            max_file_size=_parse_int(env.get("MAX_FILE_SIZE"), 10 * 1024 * 1024, 1),
            max_files_count=_parse_int(env.get("MAX_FILES_COUNT"), 5, 1, 20),
            allowed_file_types=_parse_list(env.get("ALLOWED_FILE_TYPES"), ["application/pdf"]),
            rate_limit_enabled=_parse_bool(env.get("ENABLE_RATE_LIMITING"), True),
            quizzes_per_minute=_parse_int(env.get("RATE_LIMIT_QUIZZES_PER_MINUTE"), 2, 1, 100),
            api_requests_per_minute=_parse_int(env.get("RATE_LIMIT_API_REQUESTS_PER_MINUTE"), 50, 10, 1000),
            cors_origins=_parse_list(
                env.get("CORS_ORIGINS"), ["http://localhost:3000", "http://localhost:5173"]
            ),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            debug_mode=_parse_bool(env.get("DEBUG_MODE"), False),
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def search_enabled(self) -> bool:
        return bool(self.tavily_api_key)

    def validate(self) -> list[str]:
        """Returns a list of configuration problems (empty when valid)."""
        errors = []
        if not self.openrouter_api_key or self.openrouter_api_key == "your_openrouter_api_key_here":
            errors.append("OPENROUTER_API_KEY is required and must be set to a valid API key")
        if self.min_questions >= self.max_questions:
            errors.append("MIN_QUIZ_LENGTH must be less than MAX_QUIZ_LENGTH")
        return errors

    def to_dict(self) -> dict:
        """Secret-free view for diagnostics."""
        data = asdict(self)
        data.pop("openrouter_api_key")
        data.pop("tavily_api_key")
        data["openrouter_configured"] = bool(self.openrouter_api_key)
        data["search_enabled"] = self.search_enabled
        return data


# -----------------------------------------------------------------------------
# Singleton
# -----------------------------------------------------------------------------

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Returns the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        load_dotenv()
        _config = AppConfig.from_env()
    return _config


def reload_config() -> AppConfig:
    """Discards the cached configuration and reads the environment again."""
    global _config
    _config = None
    return get_config()
