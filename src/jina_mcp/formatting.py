"""Render operation results as the text of MCP content blocks.

Every listing renderer takes ``output_format``: ``"text"`` (numbered,
markdown-ish lines) or ``"yaml"`` (a YAML document via PyYAML).
"""
from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import yaml

from .tool_scheduler import BatchOutcome
from .tools.reader import PublicationDate


def format_yaml(data: Any) -> str:
    try:
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, indent=2)
    except yaml.YAMLError:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def format_read(url: str, content: str, elapsed_ms: int) -> str:
    return f"**URL:** {url}\n**Time:** {elapsed_ms}ms\n\n{content}"


def format_datetime(url: str, result: PublicationDate, elapsed_ms: int) -> str:
    return (
        f"URL: {url}\n"
        f"Publication Date: {result.date}\n"
        f"Accuracy: {result.accuracy}\n"
        f"Time: {elapsed_ms}ms"
    )


def format_search_results(
    query: str,
    results: Sequence[dict[str, Any]],
    elapsed_ms: int,
    limit: int = 10,
    output_format: str = "text",
) -> str:
    shown = list(results)[:limit]
    if output_format == "yaml":
        return format_yaml({
            "query": query,
            "result_count": len(results),
            "time_taken_ms": elapsed_ms,
            "results": [
                {
                    "rank": i + 1,
                    "title": r.get("title"),
                    "url": r.get("url"),
                    "description": r.get("description") or "(no description)",
                    "publish_date": r.get("publish_date") or "(no date)",
                }
                for i, r in enumerate(shown)
            ],
        })
    lines = [
        f"{i + 1}. **{r.get('title') or '(no title)'}**\n"
        f"   URL: {r.get('url', '')}\n"
        f"   {r.get('description') or '(no description)'}"
        for i, r in enumerate(shown)
    ]
    header = f'Search: "{query}"\nResults: {len(results)} | Time: {elapsed_ms}ms'
    return header + "\n\n" + "\n\n".join(lines)


def format_arxiv_results(
    query: str,
    results: Sequence[dict[str, Any]],
    elapsed_ms: int,
    limit: int = 10,
    output_format: str = "text",
) -> str:
    shown = list(results)[:limit]
    if output_format == "yaml":
        papers = []
        for i, r in enumerate(shown):
            abstract = r.get("abstract")
            papers.append({
                "rank": i + 1,
                "title": r.get("title"),
                "url": r.get("url"),
                "authors": r.get("authors") or [],
                "published_date": r.get("published_date") or "(no date)",
                "abstract": abstract[:200] + "..." if abstract else "(no abstract)",
            })
        return format_yaml({
            "query": query,
            "result_count": len(results),
            "time_taken_ms": elapsed_ms,
            "papers": papers,
        })
    lines = [
        f"{i + 1}. **{r.get('title') or '(no title)'}**\n"
        f"   URL: {r.get('url', '')}\n"
        f"   Authors: {', '.join(r.get('authors') or []) or '(none)'}"
        for i, r in enumerate(shown)
    ]
    header = f'ArXiv Search: "{query}"\nPapers Found: {len(results)} | Time: {elapsed_ms}ms'
    return header + "\n\n" + "\n\n".join(lines)


def format_image_results(
    query: str,
    results: Sequence[dict[str, Any]],
    elapsed_ms: int,
    limit: int = 20,
    output_format: str = "text",
) -> str:
    shown = list(results)[:limit]
    if output_format == "yaml":
        return format_yaml({
            "query": query,
            "result_count": len(results),
            "time_taken_ms": elapsed_ms,
            "images": [
                {"rank": i + 1, "url": r.get("url"), "title": r.get("title") or "(no title)"}
                for i, r in enumerate(shown)
            ],
        })
    lines = [f"{i + 1}. [{r.get('title') or '(no title)'}]({r.get('url', '')})" for i, r in enumerate(shown)]
    header = f'Image Search: "{query}"\nImages Found: {len(results)} | Time: {elapsed_ms}ms'
    return header + "\n\n" + "\n".join(lines)


def format_parallel_read(
    outcomes: Sequence[BatchOutcome[str, str]],
    elapsed_ms: int,
    output_format: str = "text",
) -> str:
    if output_format == "yaml":
        return format_yaml({
            "total_urls": len(outcomes),
            "successful": sum(1 for o in outcomes if o.ok),
            "failed": sum(1 for o in outcomes if not o.ok),
            "time_taken_ms": elapsed_ms,
            "results": [
                {
                    "rank": i + 1,
                    "url": o.item,
                    "status": "success" if o.ok else "failed",
                    "character_count": len(o.payload or "") if o.ok else 0,
                    **({"content": o.payload} if o.ok else {"error": o.error}),
                }
                for i, o in enumerate(outcomes)
            ],
        })
    summary = [
        f"{i + 1}. OK {o.item} ({len(o.payload or '')} chars)" if o.ok else f"{i + 1}. FAILED {o.item} - {o.error}"
        for i, o in enumerate(outcomes)
    ]
    sections = [f"## {o.item}\n\n{o.payload}" for o in outcomes if o.ok]
    text = f"Parallel Read Results ({elapsed_ms}ms):\n\n" + "\n".join(summary)
    if sections:
        text += "\n\n---\n\n" + "\n\n---\n\n".join(sections)
    return text


def format_parallel_search(
    outcomes: Sequence[BatchOutcome[str, list[dict[str, Any]]]],
    elapsed_ms: int,
    limit: int = 5,
    output_format: str = "text",
) -> str:
    if output_format == "yaml":
        return format_yaml({
            "total_queries": len(outcomes),
            "successful": sum(1 for o in outcomes if o.ok),
            "failed": sum(1 for o in outcomes if not o.ok),
            "time_taken_ms": elapsed_ms,
            "results": [
                {
                    "query": o.item,
                    "status": "success" if o.ok else "failed",
                    **(
                        {"results": [{"title": r.get("title"), "url": r.get("url")} for r in (o.payload or [])[:limit]]}
                        if o.ok
                        else {"error": o.error}
                    ),
                }
                for o in outcomes
            ],
        })
    lines = []
    for i, o in enumerate(outcomes):
        if not o.ok:
            lines.append(f'{i + 1}. FAILED "{o.item}" - {o.error}')
            continue
        payload = o.payload or []
        lines.append(f'{i + 1}. OK "{o.item}" - {len(payload)} results')
        lines.extend(f"   - {r.get('title') or '(no title)'}: {r.get('url', '')}" for r in payload[:limit])
    return f"Parallel Search Results ({elapsed_ms}ms):\n\n" + "\n".join(lines)
