from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import ServerConfig
from ..tool_scheduler import BatchOutcome, BatchScheduler
from .client import JinaClient
from .reader import PublicationDate, ReaderTool, ReadOptions
from .search import SearchOptions, SearchTool

_log = logging.getLogger("jina_mcp.manager")


class ToolManager:
    """Owns the Jina client and the tools built on it."""

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ServerConfig()
        self.client = JinaClient(
            self.config.api_key,
            timeout_ms=self.config.timeout_ms,
            transport=transport,
        )
        self.reader = ReaderTool(self.client, self.config.reader_base_url)
        self.search = SearchTool(self.client, self.config.search_base_url)

    @property
    def authenticated(self) -> bool:
        return bool(self.client.api_key)

    async def run_read_url(self, url: str, options: ReadOptions | None = None) -> str:
        return await self.reader.read_url(url, options)

    async def run_screenshot(self, url: str, full_page: bool = False) -> bytes:
        return await self.reader.capture_screenshot(url, full_page)

    async def run_guess_datetime(self, url: str) -> PublicationDate:
        return await self.reader.guess_datetime(url)

    async def run_search_web(self, query: str, options: SearchOptions | None = None) -> list[dict[str, Any]]:
        return await self.search.search_web(query, options)

    async def run_search_arxiv(self, query: str, max_results: int | None = None) -> list[dict[str, Any]]:
        return await self.search.search_arxiv(query, max_results)

    async def run_search_images(self, query: str, count: int | None = None) -> list[dict[str, Any]]:
        return await self.search.search_images(query, count)

    async def run_expand_query(self, query: str) -> list[str]:
        return await self.search.expand_query(query)

    async def run_parallel_read(
        self,
        urls: list[str],
        max_parallel: int | None = None,
        options: ReadOptions | None = None,
    ) -> list[BatchOutcome[str, str]]:
        cap = self.config.max_parallel if max_parallel is None else max(1, max_parallel)
        _log.info("reading %d URLs in parallel (max %d concurrent)", len(urls), cap)

        async def _read(url: str) -> str:
            return await self.reader.read_url(url, options)

        scheduler: BatchScheduler[str, str] = BatchScheduler(_read, concurrency=cap, log=_log.debug)
        outcomes = await scheduler.run_batch(urls)
        _log.info("completed reading %d URLs", len(outcomes))
        return outcomes

    async def run_parallel_search(
        self,
        queries: list[str],
        max_parallel: int | None = None,
        options: SearchOptions | None = None,
    ) -> list[BatchOutcome[str, list[dict[str, Any]]]]:
        cap = self.config.max_parallel if max_parallel is None else max(1, max_parallel)
        _log.info("running %d searches in parallel (max %d concurrent)", len(queries), cap)

        async def _search(query: str) -> list[dict[str, Any]]:
            return await self.search.search_web(query, options)

        scheduler: BatchScheduler[str, list[dict[str, Any]]] = BatchScheduler(
            _search, concurrency=cap, log=_log.debug
        )
        outcomes = await scheduler.run_batch(queries)
        _log.info("completed %d searches", len(outcomes))
        return outcomes
