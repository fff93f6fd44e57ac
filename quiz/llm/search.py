"""Search Tool Adapter - Best-effort web search exposed as a model tool."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE = json.dumps(
    {"error": "Search unavailable", "details": "No search provider is configured"}
)


class SearchToolAdapter:
    """Runs one web search query per tool call (Tavily-compatible API).

    Never raises from ``search``: failures come back as a JSON error payload
    so the model can continue with document content only.
    """

    TOOL_NAME = "web_search"

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.tavily.com",
        max_results: int = 5,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_results = max_results
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config) -> "SearchToolAdapter":
        return cls(api_key=config.tavily_api_key, base_url=config.tavily_base_url)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @property
    def tool_definition(self) -> dict[str, Any]:
        """Function-calling schema advertised to the model."""
        return {
            "type": "function",
            "function": {
                "name": self.TOOL_NAME,
                "description": (
                    "Get information on recent events from the web to create more relevant "
                    "and up-to-date quiz questions. Use this for topics that are contemporary "
                    "or evolving."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "The search query to use. For example: 'Latest advancements in AI'",
                        }
                    },
                    "required": ["query"],
                },
            },
        }

    async def search(self, query: str) -> str:
        """Executes the query.

        Args:
            query: Free-text search query

        Returns:
            JSON text with the result list, or an error payload
        """
        if not self.enabled:
            return SEARCH_UNAVAILABLE

        logger.info(f'Performing web search for: "{query}"')
        try:
            response = await self._client.post(
                f"{self.base_url}/search",
                json={
                    "api_key": self.api_key,
                    "query": query,
                    "search_depth": "advanced",
                    "max_results": self.max_results,
                    "include_answer": True,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            results = response.json().get("results", [])
        except Exception as e:
            logger.error(f"Error during web search: {e}")
            return json.dumps({"error": "Search failed", "details": str(e)})

        logger.info(f"Web search complete ({len(results)} results)")
        return json.dumps(results)

    async def aclose(self) -> None:
        await self._client.aclose()
