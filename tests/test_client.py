from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from jina_mcp.tools.client import JinaClient
from jina_mcp.tools.errors import JinaApiError


def _client(handler, api_key: str | None = None) -> JinaClient:
    return JinaClient(api_key, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_bearer_header_attached_when_key_configured() -> None:
    seen: dict[str, str | None] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["accept"] = request.headers.get("accept")
        return httpx.Response(200, json={"data": {}})

    await _client(handler, api_key="secret").fetch("https://r.jina.ai/x")
    assert seen["auth"] == "Bearer secret"
    assert seen["accept"] == "application/json"


@pytest.mark.asyncio
async def test_no_auth_header_without_key() -> None:
    seen: dict[str, bool] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["has_auth"] = "authorization" in request.headers
        return httpx.Response(200, json={})

    await _client(handler).fetch("https://r.jina.ai/x")
    assert seen["has_auth"] is False


@pytest.mark.asyncio
async def test_caller_accept_header_wins() -> None:
    seen: dict[str, str | None] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["accept"] = request.headers.get("accept")
        return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})

    await _client(handler).fetch("https://r.jina.ai/x", headers={"Accept": "image/*"})
    assert seen["accept"] == "image/*"


@pytest.mark.asyncio
async def test_none_params_are_not_sent() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={})

    await _client(handler).fetch("https://s.jina.ai/search", params={"q": "x", "count": None})
    assert seen["params"] == {"q": "x"}


@pytest.mark.asyncio
async def test_parses_json_text_and_binary() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        kind = request.url.params["kind"]
        if kind == "json":
            return httpx.Response(200, json={"data": [1, 2]})
        if kind == "text":
            return httpx.Response(200, text="hello", headers={"content-type": "text/plain"})
        return httpx.Response(200, content=b"\x89PNG\r\n", headers={"content-type": "image/png"})

    client = _client(handler)
    assert await client.fetch("https://x.test/", params={"kind": "json"}) == {"data": [1, 2]}
    assert await client.fetch("https://x.test/", params={"kind": "text"}) == "hello"
    assert await client.fetch("https://x.test/", params={"kind": "image"}) == b"\x89PNG\r\n"


@pytest.mark.asyncio
async def test_non_2xx_raises_typed_error_with_details() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"retry_after": 30})

    with pytest.raises(JinaApiError) as exc:
        await _client(handler).fetch("https://s.jina.ai/search")
    assert exc.value.status == 429
    assert exc.value.code == "RATE_LIMIT_EXCEEDED"
    assert "30" in exc.value.message
    assert exc.value.details == {"retry_after": 30}


@pytest.mark.asyncio
async def test_non_2xx_text_body_becomes_details() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="upstream down", headers={"content-type": "text/plain"})

    with pytest.raises(JinaApiError) as exc:
        await _client(handler).fetch("https://s.jina.ai/search")
    assert exc.value.code == "BAD_GATEWAY"
    assert exc.value.details == "upstream down"


@pytest.mark.asyncio
async def test_unparsable_json_error_body_is_ignored() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, content=b"{not json", headers={"content-type": "application/json"})

    with pytest.raises(JinaApiError) as exc:
        await _client(handler).fetch("https://s.jina.ai/search")
    assert exc.value.code == "INTERNAL_SERVER_ERROR"
    assert exc.value.details is None


@pytest.mark.asyncio
async def test_connect_error_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(JinaApiError) as exc:
        await _client(handler).fetch("https://r.jina.ai/x")
    assert exc.value.status == 0
    assert exc.value.code == "NETWORK_ERROR"


@pytest.mark.asyncio
async def test_timeout_is_request_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(JinaApiError) as exc:
        await _client(handler).fetch("https://r.jina.ai/x", timeout_ms=1500)
    assert exc.value.status == 408
    assert exc.value.code == "REQUEST_TIMEOUT"
    assert "1500ms" in exc.value.message
