"""
ReaderTool — Jina Reader API operations.

read_url            → markdown content of a page (data.content)
capture_screenshot  → raw image bytes (screenshot=true | first_screen)
guess_datetime      → publication date, three-tier fallback:
                        1. data.publishedTime               accuracy "high"
                        2. "Publish date: YYYY-MM-DD" in text  accuracy "medium"
                        3. today (UTC)                       accuracy "unknown"
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Literal
from urllib.parse import quote

from .client import JinaClient
from .errors import JinaApiError, ResponseShapeError, ToolOperationError

_log = logging.getLogger("jina_mcp.reader")

READER_BASE_URL = "https://r.jina.ai"

_PUBLISH_DATE_RE = re.compile(r"Publish date:\s*(\d{4}-\d{2}-\d{2})")

RetainMode = Literal["all", "none", "markdown"]

# Python attribute → Reader API query parameter
_PARAM_NAMES = {
    "screenshot": "screenshot",
    "locale": "locale",
    "instruction": "instruction",
    "target_selector": "targetSelector",
    "remove_selector": "removeSelector",
    "wait_for_selector": "waitForSelector",
    "retain_images": "retainImages",
    "retain_links": "retainLinks",
    "with_images_summary": "withImagesSummary",
    "with_links_summary": "withLinksSummary",
    "proxy": "proxy",
    "user_agent": "userAgent",
    "json_schema": "jsonSchema",
}


@dataclass(frozen=True)
class ReadOptions:
    screenshot: Literal["true", "first_screen"] | None = None
    timeout: int | None = None
    locale: str | None = None
    instruction: str | None = None
    target_selector: str | None = None
    remove_selector: str | None = None
    wait_for_selector: str | None = None
    retain_images: RetainMode | None = None
    retain_links: RetainMode | None = None
    with_images_summary: bool = False
    with_links_summary: bool = False
    proxy: str | None = None
    user_agent: str | None = None
    json_schema: str | None = None

    def to_params(self) -> dict[str, str]:
        """Only set options are serialized; empty strings and False are dropped."""
        params: dict[str, str] = {}
        for attr, name in _PARAM_NAMES.items():
            value = getattr(self, attr)
            if not value:
                continue
            params[name] = "true" if value is True else str(value)
        return params


@dataclass(frozen=True)
class PublicationDate:
    date: str
    accuracy: str


def _today() -> date:
    return datetime.now(timezone.utc).date()


class ReaderTool:
    def __init__(
        self,
        client: JinaClient,
        base_url: str = READER_BASE_URL,
        *,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.today = today or _today

    def endpoint(self, url: str) -> str:
        return f"{self.base_url}/{quote(url, safe='')}"

    async def _read_data(self, url: str, options: ReadOptions) -> dict[str, Any]:
        response = await self.client.fetch(
            self.endpoint(url), params=options.to_params(), timeout_ms=options.timeout
        )
        data = response.get("data") if isinstance(response, dict) else None
        if not isinstance(data, dict):
            raise ResponseShapeError(f"Reader API returned no data object for {url}")
        return data

    async def read_url(self, url: str, options: ReadOptions | None = None) -> str:
        _log.info("reading %s", url)
        try:
            data = await self._read_data(url, options or ReadOptions())
            content = data["content"]
            if not isinstance(content, str):
                raise ResponseShapeError(f"expected text content, got {type(content).__name__}")
        except JinaApiError:
            raise
        except Exception as exc:
            raise ToolOperationError(f"Failed to read URL: {exc}") from exc
        _log.info("read %s (%d chars)", url, len(content))
        return content

    async def capture_screenshot(self, url: str, full_page: bool = False) -> bytes:
        mode = "full page" if full_page else "first screen"
        _log.info("capturing screenshot of %s (%s)", url, mode)
        options = ReadOptions(screenshot="true" if full_page else "first_screen")
        try:
            body = await self.client.fetch(
                self.endpoint(url),
                params=options.to_params(),
                headers={"Accept": "image/*"},
            )
            if not isinstance(body, bytes):
                raise ResponseShapeError(f"expected binary image, got {type(body).__name__}")
        except JinaApiError:
            raise
        except Exception as exc:
            raise ToolOperationError(f"Failed to capture screenshot: {exc}") from exc
        _log.info("captured screenshot of %s (%d bytes)", url, len(body))
        return body

    async def guess_datetime(self, url: str) -> PublicationDate:
        _log.info("detecting publication date of %s", url)
        try:
            data = await self._read_data(url, ReadOptions())
        except JinaApiError:
            raise
        except Exception as exc:
            raise ToolOperationError(f"Failed to guess datetime: {exc}") from exc

        published = data.get("publishedTime")
        if published:
            return PublicationDate(date=str(published), accuracy="high")
        match = _PUBLISH_DATE_RE.search(str(data.get("content") or ""))
        if match:
            return PublicationDate(date=match.group(1), accuracy="medium")
        _log.info("no publication date found for %s", url)
        return PublicationDate(date=self.today().isoformat(), accuracy="unknown")
