from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .tools.client import DEFAULT_TIMEOUT_MS
from .tools.reader import READER_BASE_URL
from .tools.search import SEARCH_BASE_URL

CONFIG_PATH = Path.home() / ".config" / "jina-mcp" / "config.yml"

OUTPUT_FORMATS = ("text", "yaml")

# environment variable → config field
_ENV_OVERRIDES = {
    "JINA_API_KEY": "api_key",
    "JINA_READER_URL": "reader_base_url",
    "JINA_SEARCH_URL": "search_base_url",
    "JINA_MCP_LOG_LEVEL": "log_level",
}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class ServerConfig:
    api_key: str = ""                          # empty = unauthenticated calls
    reader_base_url: str = READER_BASE_URL
    search_base_url: str = SEARCH_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS       # per upstream call
    max_parallel: int = 5                      # default cap for parallel_* tools
    output_format: str = "text"                # text | yaml
    log_level: str = "INFO"


def _validate(cfg: Mapping[str, Any]) -> dict[str, Any]:
    defaults = ServerConfig().__dict__.copy()
    merged = {**defaults, **{k: v for k, v in cfg.items() if k in defaults}}
    merged["api_key"] = str(merged["api_key"] or "").strip()
    for key in ("reader_base_url", "search_base_url"):
        if not isinstance(merged[key], str) or not merged[key].strip():
            merged[key] = defaults[key]
        merged[key] = merged[key].strip()
    raw_timeout = merged["timeout_ms"]
    merged["timeout_ms"] = (
        int(raw_timeout) if isinstance(raw_timeout, (int, float)) and int(raw_timeout) > 0 else defaults["timeout_ms"]
    )
    raw_mp = merged["max_parallel"]
    merged["max_parallel"] = (
        int(raw_mp) if isinstance(raw_mp, (int, float)) and int(raw_mp) >= 1 else defaults["max_parallel"]
    )
    if merged["output_format"] not in OUTPUT_FORMATS:
        merged["output_format"] = defaults["output_format"]
    level = str(merged["log_level"] or "").strip().upper()
    merged["log_level"] = level if level in logging.getLevelNamesMapping() else defaults["log_level"]
    return merged


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> ServerConfig:
    """Defaults, then the YAML file (if present), then environment overrides."""
    env = os.environ if environ is None else environ
    if path is None:
        path = Path(env["JINA_MCP_CONFIG"]) if env.get("JINA_MCP_CONFIG") else CONFIG_PATH

    raw: dict[str, Any] = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"cannot load config {path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"config {path} must be a mapping, got {type(loaded).__name__}")
        raw.update(loaded)

    for var, key in _ENV_OVERRIDES.items():
        if env.get(var):
            raw[key] = env[var]

    validated = _validate(raw)
    return ServerConfig(**{f.name: validated[f.name] for f in fields(ServerConfig)})
