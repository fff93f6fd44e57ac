"""
Synapse Quiz Server - PDF to multiple-choice quiz generation

Production-ready FastAPI server with:
- Background quiz generation through an OpenRouter-compatible API
- Optional web search tool (Tavily-compatible)
- Redis storage for quizzes, processing states and results
- Rate limiting, CORS
- Standard success/error envelopes
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

import app_state
from config import AppConfig, get_config
from quiz.exceptions import QuizServiceError
from quiz.responses import create_error, utc_now_iso
from quiz.router import router as quiz_router

__version__ = "1.0.0"

API_PREFIX = "/api/v1"

config = get_config()


# =============================================================================
# LOGGING
# =============================================================================


def configure_logging(app_config: AppConfig) -> None:
    level = logging.DEBUG if app_config.debug_mode else getattr(logging, app_config.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


configure_logging(config)
logger = logging.getLogger("server")


def validate_configuration(app_config: AppConfig) -> None:
    """Refuses to start in production with an invalid configuration."""
    errors = app_config.validate()
    if not errors:
        logger.info("Configuration validation passed")
        return
    for error in errors:
        logger.error(f"Configuration problem: {error}")
    if app_config.is_production:
        raise RuntimeError("Server cannot start with invalid configuration in production")
    logger.warning(f"Server starting with configuration warnings in {app_config.environment} mode")


# =============================================================================
# FASTAPI APP
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage app lifecycle."""
    logger.info(f"Starting Synapse Quiz Server (environment={config.environment})...")
    validate_configuration(config)
    if app_state.lifecycle is None:
        await app_state.init(config)
    app.state.started_at = time.monotonic()
    logger.info(f"Ready to process MCQ generation requests on {API_PREFIX}")
    yield
    await app_state.cleanup()
    logger.info("Graceful shutdown completed")


app = FastAPI(
    title="Synapse Quiz Server",
    description="PDF to multiple-choice quiz generation",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Rate limiter
app.state.limiter = app_state.limiter


# =============================================================================
# ERROR HANDLERS
# =============================================================================


@app.exception_handler(QuizServiceError)
async def quiz_error_handler(request: Request, exc: QuizServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error(exc.message, exc.code, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if request.url.path.endswith("/submit"):
        message, code = "Quiz ID and answers array are required", "INVALID_SUBMISSION"
    else:
        message, code = "Invalid request", "VALIDATION_ERROR"
    return JSONResponse(
        status_code=400,
        content=create_error(message, code, {"errors": jsonable_encoder(exc.errors())}),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {request.client.host if request.client else 'unknown'}")
    return JSONResponse(
        status_code=429,
        content=create_error(
            "Too many requests, please try again later.",
            "RATE_LIMITED",
            {"limit": str(exc.detail)},
        ),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and request.url.path.startswith(API_PREFIX):
        return JSONResponse(
            status_code=404,
            content=create_error(
                "API endpoint not found",
                "ENDPOINT_NOT_FOUND",
                {"path": request.url.path, "method": request.method},
            ),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error(str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    if (app_state.config or config).is_production:
        return JSONResponse(status_code=500, content=create_error("Internal server error", "INTERNAL_ERROR"))
    return JSONResponse(
        status_code=500,
        content=create_error(
            str(exc) or "An unexpected error occurred",
            "INTERNAL_ERROR",
            {"stack": traceback.format_exception(type(exc), exc, exc.__traceback__)},
        ),
    )


# =============================================================================
# ROUTES
# =============================================================================

app.include_router(quiz_router, prefix=API_PREFIX)


@app.get("/")
async def root():
    """Service banner."""
    return {
        "status": "ok",
        "message": f"Synapse Quiz Server v{__version__}",
        "health": f"{API_PREFIX}/health",
    }


@app.get(f"{API_PREFIX}/health")
async def health_check(request: Request, deep: bool = False):
    """Liveness and capacity advertisement.

    Outside production the payload also carries store and AI provider
    diagnostics; ``?deep=true`` additionally sends a test prompt.
    """
    settings = app_state.config or config
    try:
        started_at = getattr(request.app.state, "started_at", None)
        status = {
            "status": "healthy",
            "timestamp": utc_now_iso(),
            "uptime": round(time.monotonic() - started_at, 3) if started_at else 0,
            "version": __version__,
            "capacity": {
                "maxFileSize": settings.max_file_size,
                "maxFiles": settings.max_files_count,
                "allowedFileTypes": settings.allowed_file_types,
                "searchEnabled": bool(app_state.search and app_state.search.enabled),
            },
        }

        if not settings.is_production:
            status["environment"] = settings.environment
            if app_state.store is not None:
                status["redis"] = await app_state.store.health_check()
            else:
                status["redis"] = {"status": "disconnected", "connected": False}
            status["openrouter"] = {
                "configured": bool(settings.openrouter_api_key),
                "model": settings.openrouter_model,
                "baseUrl": settings.openrouter_base_url,
            }
            completion = app_state.completion
            if hasattr(completion, "get_status"):
                status["openrouterService"] = completion.get_status()
                if deep:
                    status["openrouterService"]["connection"] = await completion.test_connection()
            if app_state.lifecycle is not None:
                status["activeJobs"] = app_state.lifecycle.active_jobs

        return status
    except Exception as e:
        logger.error(f"Health check error: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "timestamp": utc_now_iso(), "error": str(e)},
        )


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.host, port=config.port)
