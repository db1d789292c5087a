"""Tavily-compatible web search client and the agent tool built on it."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.agents.document_generation.errors import ProviderError

logger = logging.getLogger(__name__)


class WebSearchArguments(BaseModel):
    """Arguments a model may pass to ``web_search``."""

    query: str = Field(..., min_length=1, description="The query to search for")
    search_depth: Literal["basic", "advanced"] | None = Field(
        None, description="The depth of the search, the configured default when omitted"
    )
    topic: Literal["general", "news", "finance"] | None = Field(None, description="Search category, 'general' when omitted")
    days: int | None = Field(None, gt=0, description="Days back from today to include; only used with the 'news' topic")
    max_results: int | None = Field(None, gt=0, description="Maximum number of results")
    include_domains: list[str] | None = Field(None, description="Only search these domains")
    exclude_domains: list[str] | None = Field(None, description="Never return results from these domains")

    model_config = ConfigDict(frozen=True, extra="forbid")


class WebSearchClient:
    """Async client for a Tavily-style ``/search`` endpoint with an in-process result cache."""

    def __init__(
        self,
        *,
        api_base: str,
        api_key: str,
        timeout_seconds: int,
        default_max_results: int,
        default_search_depth: Literal["basic", "advanced"] = "basic",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._search_url = f"{api_base.rstrip('/')}/search"
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._default_max_results = default_max_results
        self._default_search_depth = default_search_depth
        self._http_client = http_client
        self._cache: dict[str, dict[str, object]] = {}

    @staticmethod
    def build_cache_key(arguments: WebSearchArguments) -> str:
        """Hash the query together with its sorted, non-empty parameters."""
        params = arguments.model_dump(exclude={"query"}, exclude_none=True)
        params_string = json.dumps(params, sort_keys=True)
        return hashlib.md5(f"{arguments.query}-{params_string}".encode(), usedforsecurity=False).hexdigest()

    async def search(self, arguments: WebSearchArguments) -> dict[str, object]:
        """Run a search, serving repeated identical queries from the cache."""
        if arguments.search_depth is None:
            arguments = arguments.model_copy(update={"search_depth": self._default_search_depth})
        cache_key = self.build_cache_key(arguments)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Web search cache hit: query=%r", arguments.query)
            return cached

        payload: dict[str, object] = {
            "query": arguments.query,
            "search_depth": arguments.search_depth,
            "max_results": arguments.max_results or self._default_max_results,
        }
        for key in ("topic", "days", "include_domains", "exclude_domains"):
            value = getattr(arguments, key)
            if value is not None:
                payload[key] = value

        logger.info("Web search: query=%r depth=%s", arguments.query, arguments.search_depth)
        started_at = time.perf_counter()
        try:
            response = await self._post(payload)
            response.raise_for_status()
            parsed = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            elapsed = time.perf_counter() - started_at
            logger.error("Web search failed after %.1fs: %s: %s", elapsed, type(exc).__name__, exc)
            raise ProviderError(provider="web_search", detail=f"{type(exc).__name__}: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ProviderError(provider="web_search", detail="response payload must be a JSON object")

        results = parsed.get("results")
        result_count = len(results) if isinstance(results, list) else 0
        logger.info("Web search completed in %.1fs: %d results", time.perf_counter() - started_at, result_count)
        self._cache[cache_key] = parsed
        return parsed

    async def _post(self, payload: dict[str, object]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        if self._http_client is not None:
            return await self._http_client.post(self._search_url, json=payload, headers=headers, timeout=self._timeout_seconds)
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await client.post(self._search_url, json=payload, headers=headers)


class WebSearchTool:
    """Exposes :class:`WebSearchClient` to a model as ``web_search``."""

    name = "web_search"
    description = "Search the web for information"
    arguments_model = WebSearchArguments

    def __init__(self, *, client: WebSearchClient) -> None:
        self._client = client

    async def execute(self, arguments: BaseModel) -> str:
        if not isinstance(arguments, WebSearchArguments):
            raise TypeError(f"{self.name} expects WebSearchArguments, got {type(arguments).__name__}")
        response = await self._client.search(arguments)
        results = response.get("results")
        trimmed = [
            {key: item.get(key) for key in ("title", "url", "content")}
            for item in (results if isinstance(results, list) else [])
            if isinstance(item, dict)
        ]
        return json.dumps({"query": arguments.query, "results": trimmed}, ensure_ascii=False)
