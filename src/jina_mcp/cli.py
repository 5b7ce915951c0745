from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from . import mcp_server
from .config import ConfigError, ServerConfig, load_config
from .mcp_server import main as mcp_main
from .tool_args import decode_args_text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jina-mcp",
        description="MCP server exposing the Jina AI Reader and Search APIs over stdio.",
    )
    parser.add_argument("--config", type=Path, help="Path to a YAML config file")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "serve",
        help=(
            "Run the MCP (Model Context Protocol) server over stdio (default). "
            "Hook this up to Claude Desktop, LM Studio or any MCP client."
        ),
    )
    subparsers.add_parser("tools", help="List the tools this server exposes")

    call_parser = subparsers.add_parser("call", help="Invoke one tool and print the response envelope")
    call_parser.add_argument("name", help="Tool name, e.g. read_url")
    call_parser.add_argument("--args", default="", help="Tool arguments as JSON (or YAML) object")

    return parser


def _load(args: argparse.Namespace) -> ServerConfig:
    config = load_config(args.config)
    if args.log_level:
        config = replace(config, log_level=args.log_level.upper())
    return config


def tools_command() -> int:
    for schema in mcp_server._TOOL_SCHEMAS:
        summary = schema["description"].split(". ")[0].rstrip(".")
        print(f"{schema['name']:<24} {summary}")
    return 0


def call_command(config: ServerConfig, name: str, args_text: str) -> int:
    arguments, problem = decode_args_text(args_text)
    if problem:
        print(problem, file=sys.stderr)
        return 2
    mcp_server.configure_logging(config.log_level)
    mcp_server.configure(config)
    envelope = asyncio.run(mcp_server._call_tool(name, arguments))
    print(json.dumps(envelope, indent=2, ensure_ascii=False))
    return 1 if envelope.get("isError") else 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if args.command == "tools":
        sys.exit(tools_command())
    try:
        config = _load(args)
    except ConfigError as exc:
        print(f"jina-mcp: {exc}", file=sys.stderr)
        sys.exit(1)
    if args.command in (None, "serve"):
        mcp_main(config)
        return
    if args.command == "call":
        sys.exit(call_command(config, args.name, args.args))
    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
