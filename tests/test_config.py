from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from jina_mcp.config import ConfigError, ServerConfig, load_config


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.yml", environ={})
    assert cfg == ServerConfig()
    assert cfg.api_key == ""
    assert cfg.timeout_ms == 60000
    assert not (tmp_path / "missing.yml").exists()


def test_yaml_file_values(tmp_path: Path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("timeout_ms: 15000\nmax_parallel: 8\noutput_format: yaml\n", encoding="utf-8")
    cfg = load_config(path, environ={})
    assert cfg.timeout_ms == 15000
    assert cfg.max_parallel == 8
    assert cfg.output_format == "yaml"


def test_invalid_values_fall_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yml"
    path.write_text(
        "timeout_ms: -1\nmax_parallel: 0\noutput_format: xml\nlog_level: chatty\nreader_base_url: ''\nunknown: 1\n",
        encoding="utf-8",
    )
    cfg = load_config(path, environ={})
    defaults = ServerConfig()
    assert cfg.timeout_ms == defaults.timeout_ms
    assert cfg.max_parallel == defaults.max_parallel
    assert cfg.output_format == defaults.output_format
    assert cfg.log_level == defaults.log_level
    assert cfg.reader_base_url == defaults.reader_base_url


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("api_key: from-file\nlog_level: debug\n", encoding="utf-8")
    cfg = load_config(path, environ={"JINA_API_KEY": "from-env", "JINA_SEARCH_URL": "http://search.local/search"})
    assert cfg.api_key == "from-env"
    assert cfg.search_base_url == "http://search.local/search"
    assert cfg.log_level == "DEBUG"


def test_config_path_from_environment(tmp_path: Path) -> None:
    path = tmp_path / "alt.yml"
    path.write_text("max_parallel: 3\n", encoding="utf-8")
    cfg = load_config(environ={"JINA_MCP_CONFIG": str(path)})
    assert cfg.max_parallel == 3


def test_broken_yaml_is_fatal(tmp_path: Path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("timeout_ms: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, environ={})


def test_non_mapping_yaml_is_fatal(tmp_path: Path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, environ={})
