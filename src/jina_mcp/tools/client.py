from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .errors import JinaApiError, classify_status

_log = logging.getLogger("jina_mcp.client")

DEFAULT_TIMEOUT_MS = 60_000


class JinaClient:
    """Single-attempt HTTP wrapper for the Jina Reader and Search APIs.

    A fresh ``httpx.AsyncClient`` is opened per call. ``transport`` lets tests
    swap in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or None
        self.timeout_ms = timeout_ms
        self._transport = transport

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = dict(extra or {})
        if not any(key.lower() == "accept" for key in headers):
            headers["Accept"] = "application/json"
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        timeout_ms: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        timeout = timeout_ms or self.timeout_ms
        query = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            async with httpx.AsyncClient(timeout=timeout / 1000, transport=self._transport) as client:
                response = await client.get(url, params=query, headers=self._headers(headers))
        except httpx.TimeoutException as exc:
            _log.warning("timeout after %sms: %s", timeout, url)
            raise JinaApiError(408, "REQUEST_TIMEOUT", f"Request timeout after {timeout}ms") from exc
        except httpx.TransportError as exc:
            _log.warning("network error for %s: %s", url, exc)
            raise JinaApiError(0, "NETWORK_ERROR", f"Network error: {exc}") from exc

        if response.is_success:
            return _parse_body(response)

        details = _diagnostic_body(response)
        code, message = classify_status(response.status_code, details)
        _log.warning("[%s %s] %s", code, response.status_code, url)
        raise JinaApiError(response.status_code, code, message, details)


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json()
    if "text" in content_type:
        return response.text
    if "image" in content_type:
        return response.content
    return response.text


def _diagnostic_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            return response.json()
        return response.text or None
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
