from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from .client import JinaClient
from .errors import JinaApiError, ResponseShapeError, ToolOperationError

_log = logging.getLogger("jina_mcp.search")

SEARCH_BASE_URL = "https://s.jina.ai/search"

EXPAND_QUERY_RETIRED = (
    "expand_query endpoint is no longer available in Jina Search API. "
    "Please use search_web with query operators instead (site:, intitle:, filetype:)."
)


@dataclass(frozen=True)
class SearchOptions:
    count: int | None = None
    location: str | None = None
    language: str | None = None
    site: str | None = None
    page: int | None = None
    filetype: str | None = None
    intitle: str | None = None
    timeout: int | None = None
    provider: str | None = None

    def query_text(self, query: str) -> str:
        text = query
        if self.site:
            text = f"site:{self.site} {text}"
        if self.intitle:
            text = f"intitle:{self.intitle} {text}"
        return text

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.count:
            params["count"] = str(self.count)
        if self.location:
            params["gl"] = self.location
        if self.language:
            params["hl"] = self.language
        if self.page:
            params["page"] = str(self.page)
        if self.filetype:
            params["filetype"] = self.filetype
        if self.provider:
            params["provider"] = self.provider
        return params


def _require_list(response: Any) -> list[dict[str, Any]]:
    data = response.get("data") if isinstance(response, dict) else None
    if data is None:
        raise ResponseShapeError("API returned empty response")
    if not isinstance(data, list):
        raise ResponseShapeError(
            f"API returned invalid data type. Expected array, got {type(data).__name__}"
        )
    return data


class SearchTool:
    def __init__(self, client: JinaClient, base_url: str = SEARCH_BASE_URL) -> None:
        self.client = client
        self.base_url = base_url

    async def _search(
        self, label: str, query_text: str, result_type: str, options: SearchOptions
    ) -> list[dict[str, Any]]:
        params = {"q": query_text, "type": result_type, **options.to_params()}
        try:
            response = await self.client.fetch(self.base_url, params=params, timeout_ms=options.timeout)
            return _require_list(response)
        except (JinaApiError, ResponseShapeError):
            raise
        except Exception as exc:
            raise ToolOperationError(f"Failed to {label}: {exc}") from exc

    async def search_web(self, query: str, options: SearchOptions | None = None) -> list[dict[str, Any]]:
        options = options or SearchOptions()
        _log.info("web search: %r", query)
        results = await self._search("search web", options.query_text(query), "web", options)
        _log.info("web search %r: %d results", query, len(results))
        return results

    async def search_arxiv(
        self,
        query: str,
        max_results: int | None = None,
        options: SearchOptions | None = None,
    ) -> list[dict[str, Any]]:
        # site/intitle/filetype do not apply; the arxiv.org restriction is fixed
        options = replace(options or SearchOptions(), count=max_results, site=None, intitle=None, filetype=None)
        _log.info("arxiv search: %r", query)
        results = await self._search("search ArXiv", f"site:arxiv.org {query}", "web", options)
        _log.info("arxiv search %r: %d papers", query, len(results))
        return results

    async def search_images(
        self,
        query: str,
        count: int | None = None,
        options: SearchOptions | None = None,
    ) -> list[dict[str, Any]]:
        options = replace(options or SearchOptions(), count=count, site=None, intitle=None, filetype=None)
        _log.info("image search: %r", query)
        results = await self._search("search images", query, "images", options)
        _log.info("image search %r: %d images", query, len(results))
        return results

    async def expand_query(self, query: str) -> list[str]:
        raise ToolOperationError(EXPAND_QUERY_RETIRED)
