"""Completion Client - Chat completions over HTTP with timeout and retry."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Protocol

import httpx

from ..exceptions import (
    CompletionAPIError,
    CompletionError,
    CompletionTimeoutError,
    InvalidCompletionResponseError,
)

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED_FOR_LOGS]"


class CompletionProvider(Protocol):
    """Anything able to answer a chat completion request body."""

    async def complete(self, request_body: dict[str, Any]) -> dict[str, Any]: ...


def redact_file_data(request_body: dict[str, Any]) -> dict[str, Any]:
    """Copy of the body with embedded file contents replaced, for logging."""
    loggable = copy.deepcopy(request_body)
    for message in loggable.get("messages", []):
        content = message.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if part.get("type") == "file" and part.get("file", {}).get("file_data"):
                part["file"]["file_data"] = REDACTED
    return loggable


class CompletionClient:
    """OpenRouter-compatible ``/chat/completions`` client.

    Each call has a hard wall-clock timeout. Timeouts, transport errors and
    5xx answers are retried up to ``max_retries`` times with ``2**attempt``
    second backoff; 4xx answers and malformed bodies fail immediately.

    Example:
        >>> client = CompletionClient(api_key="sk-...", model="google/gemini-2.5-flash")
        >>> data = await client.complete({"model": client.model, "messages": [...]})
        >>> data["choices"][0]["message"]["content"]
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "google/gemini-2.5-flash",
        timeout: float = 120.0,
        max_retries: int = 2,
        pdf_engine: str = "native",
        debug: bool = False,
        backoff_base: float = 1.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.pdf_engine = pdf_engine
        self.debug = debug
        self.backoff_base = backoff_base
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config) -> "CompletionClient":
        return cls(
            api_key=config.openrouter_api_key,
            base_url=config.openrouter_base_url,
            model=config.openrouter_model,
            timeout=config.completion_timeout,
            max_retries=config.max_retries,
            pdf_engine=config.pdf_processing_engine,
            debug=config.debug_mode,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def complete(self, request_body: dict[str, Any]) -> dict[str, Any]:
        """Sends the request, retrying transient failures.

        Args:
            request_body: Full chat completion body (model, messages, ...)

        Returns:
            Decoded response containing ``choices[0].message``

        Raises:
            CompletionTimeoutError: Every attempt timed out
            CompletionAPIError: Non-2xx answer (4xx immediately, 5xx after retries)
            InvalidCompletionResponseError: 2xx answer without a message
            CompletionError: Network failure after retries
        """
        if self.debug:
            logger.debug(f"Completion request: {redact_file_data(request_body)}")

        attempt = 0
        while True:
            try:
                return await self._post(request_body)
            except CompletionError as e:
                if not e.transient or attempt >= self.max_retries:
                    raise
                delay = self.backoff_base * (2**attempt)
                attempt += 1
                logger.warning(
                    f"Completion request failed, retrying ({attempt}/{self.max_retries}) in {delay}s: {e.message}"
                )
                await asyncio.sleep(delay)

    async def _post(self, request_body: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        limit = timeout or self.timeout
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    f"{self.base_url}/chat/completions",
                    json=request_body,
                    headers=self._headers,
                ),
                timeout=limit,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise CompletionTimeoutError(
                f"AI provider request timed out after {int(limit * 1000)}ms"
            ) from e
        except httpx.TransportError as e:
            raise CompletionError(f"AI provider network error: {e}") from e

        if response.is_error:
            raise CompletionAPIError(response.status_code, self._error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidCompletionResponseError("AI provider returned a non-JSON body") from e

        if self.debug:
            logger.debug(f"Completion response: {data}")

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices[0], dict) or not choices[0].get("message"):
            logger.error(f"Invalid response structure from AI provider: {data}")
            raise InvalidCompletionResponseError("Invalid response structure from AI provider")
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
        except (ValueError, AttributeError):
            pass
        return response.reason_phrase or "Unknown error"

    async def test_connection(self) -> dict[str, Any]:
        """Sends a tiny prompt once; reports the outcome without raising."""
        body = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": "Generate a simple test question about mathematics with 4 multiple choice options.",
                }
            ],
            "max_tokens": 500,
        }
        try:
            await self._post(body, timeout=min(self.timeout, 30.0))
        except CompletionError as e:
            return {"success": False, "model": self.model, "error": e.message}
        return {"success": True, "model": self.model, "response": "Connection successful"}

    def get_status(self) -> dict[str, Any]:
        """Non-secret diagnostics for the health endpoint."""
        return {
            "configured": bool(self.api_key),
            "model": self.model,
            "baseUrl": self.base_url,
            "timeout": int(self.timeout * 1000),
            "maxRetries": self.max_retries,
            "pdfEngine": self.pdf_engine,
        }

    async def aclose(self) -> None:
        await self._client.aclose()
