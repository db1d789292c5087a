"""Reader-service client that returns the text of a web page, and its agent tool."""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.agents.document_generation.errors import ProviderError

logger = logging.getLogger(__name__)


class UrlContentArguments(BaseModel):
    """Arguments a model may pass to ``get_url_content``."""

    url: str = Field(..., min_length=1, description="The URL to get the content from")

    model_config = ConfigDict(frozen=True, extra="forbid")


class UrlReaderClient:
    """Fetches ``{api_base}/{url}`` from a Jina-style reader and returns plain text."""

    def __init__(
        self,
        *,
        api_base: str,
        timeout_seconds: int,
        max_chars: int,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_base = api_base.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._max_chars = max_chars
        self._http_client = http_client

    async def read(self, url: str) -> str:
        reader_url = f"{self._api_base}/{url}"
        logger.info("Fetching URL content: %s", url)
        started_at = time.perf_counter()
        try:
            response = await self._get(reader_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("URL fetch failed after %.1fs: %s: %s", time.perf_counter() - started_at, type(exc).__name__, exc)
            raise ProviderError(provider="url_reader", detail=f"{url}: {type(exc).__name__}: {exc}") from exc

        text = response.text
        logger.info("URL content retrieved in %.1fs: %d chars", time.perf_counter() - started_at, len(text))
        if len(text) > self._max_chars:
            return text[: self._max_chars]
        return text

    async def _get(self, reader_url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(reader_url, timeout=self._timeout_seconds)
        async with httpx.AsyncClient(timeout=self._timeout_seconds, follow_redirects=True) as client:
            return await client.get(reader_url)


class UrlContentTool:
    """Exposes :class:`UrlReaderClient` to a model as ``get_url_content``."""

    name = "get_url_content"
    description = "Get the content of a URL"
    arguments_model = UrlContentArguments

    def __init__(self, *, client: UrlReaderClient) -> None:
        self._client = client

    async def execute(self, arguments: BaseModel) -> str:
        if not isinstance(arguments, UrlContentArguments):
            raise TypeError(f"{self.name} expects UrlContentArguments, got {type(arguments).__name__}")
        return await self._client.read(arguments.url)
