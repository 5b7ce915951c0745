"""
MCP (Model Context Protocol) server for the Jina AI Reader and Search APIs.

Exposes URL reading, screenshots, publication-date detection, web / arXiv /
image search and parallel read/search batches as MCP tools that any
MCP-compatible client (Claude Desktop, LM Studio, etc.) can use.

Protocol: JSON-RPC 2.0 over stdio (one JSON object per line). Logs go to
stderr only; stdout carries protocol messages and nothing else.

Screenshot responses are returned as an inline base64-encoded image block.

Usage
-----
Run directly:
    python -m jina_mcp.mcp_server

Or via the CLI:
    jina-mcp serve

Claude Desktop / LM Studio mcpServers entry
-------------------------------------------
{
  "mcpServers": {
    "jina": {
      "command": "jina-mcp",
      "args": ["serve"],
      "env": {"JINA_API_KEY": "jina_..."}
    }
  }
}
"""
from __future__ import annotations

import asyncio
import base64
import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any

from .config import ConfigError, ServerConfig, load_config
from .formatting import (
    format_arxiv_results,
    format_datetime,
    format_image_results,
    format_parallel_read,
    format_parallel_search,
    format_read,
    format_search_results,
)
from .tool_args import parse_tool_args
from .tools.errors import JinaApiError, ToolOperationError, describe_error
from .tools.manager import ToolManager

SERVER_NAME = "jina-mcp"
SERVER_VERSION = "1.0.0"
_PROTOCOL_VERSIONS = {"2024-11-05", "2025-03-26", "2025-06-18"}

_log = logging.getLogger("jina_mcp.server")
_manager: ToolManager | None = None


def _get_manager() -> ToolManager:
    global _manager
    if _manager is None:
        _manager = ToolManager(load_config())
    return _manager


def configure(config: ServerConfig) -> ToolManager:
    global _manager
    _manager = ToolManager(config)
    return _manager


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Tool schema registry — one entry per exposed tool
# ---------------------------------------------------------------------------

_RETAIN_ENUM = ["all", "none", "markdown"]

_TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "name": "primer",
        "description": (
            "Get system information and server status: current server time, timezone, "
            "version and whether an API key is configured. No API key required."
        ),
        "inputSchema": {"type": "object", "properties": {}, "required": []},
    },
    {
        "name": "read_url",
        "description": (
            "Read and extract the content of a URL as markdown using the Jina Reader API. "
            "Supports extraction instructions, CSS selectors, image/link retention modes, "
            "proxies, custom user agents and JSON-schema structured output."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "url":             {"type": "string", "description": "The URL to read."},
                "timeout":         {"type": "number", "description": "Request timeout in milliseconds (default 60000)."},
                "locale":          {"type": "string", "description": "Browser locale (e.g. 'en-US', 'pl-PL')."},
                "instruction":     {"type": "string", "description": "Custom instruction for content extraction."},
                "targetSelector":  {"type": "string", "description": "CSS selector of the element to extract."},
                "removeSelector":  {"type": "string", "description": "CSS selectors to remove (comma-separated)."},
                "waitForSelector": {"type": "string", "description": "CSS selector to wait for before extraction."},
                "retainImages": {
                    "type": "string",
                    "enum": _RETAIN_ENUM,
                    "description": "How to handle images (default 'markdown').",
                },
                "retainLinks": {
                    "type": "string",
                    "enum": _RETAIN_ENUM,
                    "description": "How to handle links (default 'markdown').",
                },
                "withImagesSummary": {"type": "boolean", "description": "Append an images summary."},
                "withLinksSummary":  {"type": "boolean", "description": "Append a links summary."},
                "proxy":      {"type": "string", "description": "Proxy server URL."},
                "userAgent":  {"type": "string", "description": "Custom User-Agent string."},
                "jsonSchema": {"type": "string", "description": "JSON schema for structured output."},
            },
            "required": ["url"],
        },
    },
    {
        "name": "capture_screenshot_url",
        "description": "Capture a screenshot of a URL and return it as an inline image.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "url":      {"type": "string", "description": "The URL to screenshot."},
                "fullPage": {
                    "type": "boolean",
                    "description": "Capture the full page instead of the first screen (default false).",
                },
            },
            "required": ["url"],
        },
    },
    {
        "name": "guess_datetime_url",
        "description": (
            "Detect the publication date of a URL. Accuracy is 'high' when the page exposes "
            "a published time, 'medium' when found in the text, 'unknown' when falling back "
            "to today's date."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"url": {"type": "string", "description": "The URL to analyze."}},
            "required": ["url"],
        },
    },
    {
        "name": "parallel_read_url",
        "description": (
            "Read multiple URLs in parallel (bounded concurrency). One failing URL does not "
            "abort the batch; results are listed in completion order."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "urls": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "URLs to read (list of strings or comma-separated string).",
                },
                "maxParallel":    {"type": "number", "description": "Maximum parallel requests (defaults to the configured max_parallel, 5)."},
                "timeout":        {"type": "number", "description": "Per-URL timeout in milliseconds (default 60000)."},
                "locale":         {"type": "string", "description": "Browser locale (e.g. 'en-US')."},
                "instruction":    {"type": "string", "description": "Custom instruction for content extraction."},
                "targetSelector": {"type": "string", "description": "CSS selector of the element to extract."},
                "retainImages":   {"type": "string", "enum": _RETAIN_ENUM, "description": "How to handle images."},
                "retainLinks":    {"type": "string", "enum": _RETAIN_ENUM, "description": "How to handle links."},
            },
            "required": ["urls"],
        },
    },
    {
        "name": "search_web",
        "description": "Search the web with the Jina Search API, with geo, language, site, file type and title filters.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query":    {"type": "string", "description": "Search query (e.g. 'AI machine learning')."},
                "count":    {"type": "number", "description": "Number of results to return (default 10)."},
                "location": {"type": "string", "description": "Country code for geolocation (e.g. 'US', 'PL')."},
                "language": {"type": "string", "description": "Language code for results (e.g. 'en', 'de')."},
                "site":     {"type": "string", "description": "Restrict results to a domain (e.g. 'github.com')."},
                "page":     {"type": "number", "description": "Page number for pagination (default 1)."},
                "filetype": {"type": "string", "description": "Filter by file type (e.g. 'pdf')."},
                "intitle":  {"type": "string", "description": "Search only in page titles."},
                "timeout":  {"type": "number", "description": "Request timeout in milliseconds (default 60000)."},
                "provider": {"type": "string", "description": "Search provider ('google', 'bing', ...)."},
            },
            "required": ["query"],
        },
    },
    {
        "name": "search_arxiv",
        "description": "Search academic papers on arXiv (web search restricted to arxiv.org).",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query":      {"type": "string", "description": "Search query."},
                "maxResults": {"type": "number", "description": "Maximum number of papers (default 10)."},
            },
            "required": ["query"],
        },
    },
    {
        "name": "search_images",
        "description": "Search for images.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Image search query."},
                "count": {"type": "number", "description": "Number of images (default 20)."},
            },
            "required": ["query"],
        },
    },
    {
        "name": "parallel_search_web",
        "description": (
            "Run multiple web searches in parallel (bounded concurrency). One failing query "
            "does not abort the batch; results are listed in completion order."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "queries": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Search queries (list of strings or comma-separated string).",
                },
                "maxParallel": {"type": "number", "description": "Maximum parallel searches (defaults to the configured max_parallel, 5)."},
            },
            "required": ["queries"],
        },
    },
    {
        "name": "expand_query",
        "description": (
            "Deprecated: the query expansion endpoint was retired upstream. Always fails; "
            "use search_web with site:, intitle: or filetype: operators instead."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {"query": {"type": "string", "description": "Query to expand."}},
            "required": ["query"],
        },
    },
]

_TOOL_NAMES = {schema["name"] for schema in _TOOL_SCHEMAS}


def _text(text: str, *, error: bool = False) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": error}


def _image_mime(data: bytes) -> str:
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/png"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _primer_text(mgr: ToolManager) -> str:
    now = datetime.now().astimezone()
    return (
        "Server Status: Online\n"
        f"Version: {SERVER_VERSION}\n"
        f"Current Time: {now.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"Timezone: {now.tzname() or 'local'} (UTC{now.strftime('%z')})\n"
        f"Timestamp: {datetime.now(timezone.utc).isoformat()}\n"
        f"API Key Configured: {'YES' if mgr.authenticated else 'NO'}\n\n"
        "Jina MCP Server is ready to serve requests."
    )


async def _call_tool(name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
    """Run one tool invocation; always returns a ``{content, isError}`` envelope."""
    if name not in _TOOL_NAMES:
        return _text(f"Unknown tool: {name}", error=True)
    args, problem = parse_tool_args(name, arguments)
    if args is None:
        return _text(f"Invalid arguments for {name}: {problem}", error=True)

    _log.info("call %s", name)
    try:
        mgr = _get_manager()
        fmt = mgr.config.output_format
        start = time.monotonic()

        if name == "primer":
            return _text(_primer_text(mgr))

        if name == "read_url":
            content = await mgr.run_read_url(args.url, args.read_options())
            return _text(format_read(args.url, content, _elapsed_ms(start)))

        if name == "capture_screenshot_url":
            image = await mgr.run_screenshot(args.url, args.full_page)
            return {
                "content": [{
                    "type": "image",
                    "data": base64.standard_b64encode(image).decode("ascii"),
                    "mimeType": _image_mime(image),
                }],
                "isError": False,
            }

        if name == "guess_datetime_url":
            result = await mgr.run_guess_datetime(args.url)
            return _text(format_datetime(args.url, result, _elapsed_ms(start)))

        if name == "parallel_read_url":
            outcomes = await mgr.run_parallel_read(args.urls, args.max_parallel, args.read_options())
            return _text(format_parallel_read(outcomes, _elapsed_ms(start), output_format=fmt))

        if name == "search_web":
            results = await mgr.run_search_web(args.query, args.search_options())
            return _text(format_search_results(
                args.query, results, _elapsed_ms(start), limit=args.count or 10, output_format=fmt,
            ))

        if name == "search_arxiv":
            results = await mgr.run_search_arxiv(args.query, args.max_results)
            return _text(format_arxiv_results(
                args.query, results, _elapsed_ms(start), limit=args.max_results, output_format=fmt,
            ))

        if name == "search_images":
            results = await mgr.run_search_images(args.query, args.count)
            return _text(format_image_results(
                args.query, results, _elapsed_ms(start), limit=args.count, output_format=fmt,
            ))

        if name == "parallel_search_web":
            outcomes = await mgr.run_parallel_search(args.queries, args.max_parallel)
            return _text(format_parallel_search(outcomes, _elapsed_ms(start), output_format=fmt))

        if name == "expand_query":
            expansions = await mgr.run_expand_query(args.query)
            return _text("\n".join(expansions))

        raise ToolOperationError(f"no handler registered for {name}")

    except JinaApiError as exc:
        _log.error("tool %s failed: [%s %s] %s", name, exc.code, exc.status, exc.message)
        return _text(describe_error(exc), error=True)
    except Exception as exc:
        _log.error("tool %s failed: %s", name, exc)
        return _text(f'Error executing tool "{name}": {exc}', error=True)


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 helpers
# ---------------------------------------------------------------------------

def _ok(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _err(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def _write(obj: dict) -> None:
    sys.stdout.write(json.dumps(obj) + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Main request handler
# ---------------------------------------------------------------------------

async def _handle(line: str) -> None:
    try:
        req = json.loads(line)
    except json.JSONDecodeError:
        _write(_err(None, -32700, "Parse error"))
        return
    if not isinstance(req, dict):
        _write(_err(None, -32600, "Invalid Request"))
        return

    req_id = req.get("id")
    method = req.get("method", "")
    params = req.get("params") or {}
    if not isinstance(params, dict):
        params = {}

    if method == "initialize":
        client_ver = params.get("protocolVersion", "2024-11-05")
        agreed_ver = client_ver if client_ver in _PROTOCOL_VERSIONS else "2024-11-05"
        _write(_ok(req_id, {
            "protocolVersion": agreed_ver,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        }))

    elif method in ("notifications/initialized", "initialized"):
        # Notification — no response needed
        pass

    elif method == "tools/list":
        _log.info("listing %d tools", len(_TOOL_SCHEMAS))
        _write(_ok(req_id, {"tools": _TOOL_SCHEMAS}))

    elif method == "tools/call":
        tool_name = str(params.get("name", ""))
        arguments = params.get("arguments") or {}
        _write(_ok(req_id, await _call_tool(tool_name, arguments)))

    elif method == "ping":
        _write(_ok(req_id, {}))

    else:
        if req_id is not None:
            _write(_err(req_id, -32601, f"Method not found: {method}"))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

# Upper bound for a single JSON-RPC line read from stdin.
_MAX_LINE_BYTES = 16 * 1024 * 1024


async def _serve(reader: asyncio.StreamReader) -> None:
    while True:
        try:
            line_bytes = await reader.readline()
        except ValueError as exc:
            # readline() has already dropped the oversized line from the buffer.
            _log.error("rejected oversized request: %s", exc)
            _write(_err(None, -32600, "Invalid Request: line too long"))
            continue
        except OSError as exc:
            _log.error("stdin closed: %s", exc)
            break
        if not line_bytes:
            break
        line = line_bytes.decode(errors="replace").strip()
        if line:
            await _handle(line)


async def _run() -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=_MAX_LINE_BYTES)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    await _serve(reader)


def main(config: ServerConfig | None = None) -> None:
    if config is None:
        try:
            config = load_config()
        except ConfigError as exc:
            configure_logging()
            _log.critical("%s", exc)
            sys.exit(1)
    configure_logging(config.log_level)
    mgr = configure(config)
    if not mgr.authenticated:
        _log.warning("JINA_API_KEY is not set; requests are sent unauthenticated")
    _log.info("%s %s starting on stdio, %d tools registered", SERVER_NAME, SERVER_VERSION, len(_TOOL_SCHEMAS))
    asyncio.run(_run())


if __name__ == "__main__":
    main()
