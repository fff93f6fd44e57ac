# =============================================================================
# TESTES - Search Tool Adapter
# =============================================================================
# Testes unitários para a busca web exposta como tool
# =============================================================================

import json

import httpx
import pytest


def _adapter(handler, api_key="tvly-test"):
    from quiz.llm.search import SearchToolAdapter

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SearchToolAdapter(api_key=api_key, base_url="https://search.test", http_client=client)


class TestSearchToolAdapter:
    """Testes para SearchToolAdapter.search."""

    @pytest.mark.asyncio
    async def test_disabled_returns_unavailable(self):
        """Sem API key não faz requisição."""
        from quiz.llm.search import SEARCH_UNAVAILABLE

        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"results": []})

        adapter = _adapter(handler, api_key="")

        assert adapter.enabled is False
        assert await adapter.search("anything") == SEARCH_UNAVAILABLE
        assert calls == []

    @pytest.mark.asyncio
    async def test_search_success(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"results": [{"title": "A", "content": "B"}]})

        adapter = _adapter(handler)
        result = await adapter.search("quantum computing")

        assert json.loads(result) == [{"title": "A", "content": "B"}]
        assert captured["url"] == "https://search.test/search"
        assert captured["body"]["query"] == "quantum computing"
        assert captured["body"]["search_depth"] == "advanced"
        assert captured["body"]["max_results"] == 5
        assert captured["body"]["include_answer"] is True

    @pytest.mark.asyncio
    async def test_http_error_returns_failure_payload(self):
        """Erro do provider vira payload, nunca exceção."""

        def handler(request):
            return httpx.Response(500, json={"error": "down"})

        result = json.loads(await _adapter(handler).search("x"))

        assert result["error"] == "Search failed"
        assert "500" in result["details"]

    @pytest.mark.asyncio
    async def test_network_error_returns_failure_payload(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = json.loads(await _adapter(handler).search("x"))

        assert result == {"error": "Search failed", "details": "connection refused"}

    def test_tool_definition(self):
        from quiz.llm.search import SearchToolAdapter

        definition = SearchToolAdapter().tool_definition

        assert definition["type"] == "function"
        assert definition["function"]["name"] == "web_search"
        assert definition["function"]["parameters"]["required"] == ["query"]

    def test_from_config(self, test_config):
        from quiz.llm.search import SearchToolAdapter

        test_config.tavily_api_key = "tvly-abc"
        adapter = SearchToolAdapter.from_config(test_config)

        assert adapter.enabled is True
        assert adapter.base_url == "https://api.tavily.com"
