"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from exporttool.core.config import (
    DEFAULT_API_URL,
    Configuration,
    load_config,
)
from exporttool.core.errors import ConfigError
from exporttool.core.logging import LogLevel


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path


def test_load_full_config(tmp_path: Path) -> None:
    """Test every key is parsed into the Configuration."""
    path = write_config(
        tmp_path,
        f"""
log_file_level: DEBUG
log_cli_level: info
log_dir: {tmp_path / "logs"}
output_dir: {tmp_path / "out"}
session:
  backend: "mybackend.session:create_session"
  api_url: "https://api.example.com"
  telemetry: false
login:
  max_attempts: 5
runner:
  poll_interval: 0.25
version_check: false
""",
    )

    cfg = load_config(path)

    assert cfg.log_file_level == LogLevel.DEBUG
    assert cfg.log_cli_level == LogLevel.INFO
    assert cfg.log_dir == tmp_path / "logs"
    assert cfg.output_dir == tmp_path / "out"
    assert cfg.session_backend == "mybackend.session:create_session"
    assert cfg.api_url == "https://api.example.com"
    assert cfg.telemetry_enabled is False
    assert cfg.max_login_attempts == 5
    assert cfg.poll_interval == 0.25
    assert cfg.version_check is False
    assert cfg.config_path == path


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    """Test an empty file yields the default configuration."""
    cfg = load_config(write_config(tmp_path, ""))

    assert cfg.log_file_level == LogLevel.FULL
    assert cfg.log_cli_level == LogLevel.WARNING
    assert cfg.api_url == DEFAULT_API_URL
    assert cfg.max_login_attempts == 3
    assert cfg.session_backend is None


def test_missing_default_file_gives_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Test a missing file at the default location is not an error."""
    monkeypatch.setattr("exporttool.core.config.default_config_path", lambda: tmp_path / "absent.yaml")

    cfg = load_config()

    assert isinstance(cfg, Configuration)
    assert cfg.config_path is None


def test_missing_explicit_file_is_error(tmp_path: Path) -> None:
    """Test a missing explicitly requested file raises ConfigError."""
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    """Test malformed YAML raises ConfigError."""
    with pytest.raises(ConfigError, match="Cannot read configuration file"):
        load_config(write_config(tmp_path, "session: [unclosed"))


def test_non_mapping_file(tmp_path: Path) -> None:
    """Test a file that is not a mapping raises ConfigError."""
    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_config(write_config(tmp_path, "- a\n- b\n"))


@pytest.mark.parametrize(
    ("content", "location"),
    [
        ("unknown_key: 1", "(root)"),
        ("login:\n  max_attempts: 0", "login.max_attempts"),
        ("runner:\n  poll_interval: 0", "runner.poll_interval"),
        ("session:\n  backend: not-a-dotted-path", "session.backend"),
        ("version_check: sometimes", "version_check"),
    ],
)
def test_schema_violations(tmp_path: Path, content: str, location: str) -> None:
    """Test schema violations are reported with their location."""
    with pytest.raises(ConfigError) as exc_info:
        load_config(write_config(tmp_path, content))

    assert location in str(exc_info.value)


def test_invalid_log_level(tmp_path: Path) -> None:
    """Test an unknown log level lists the valid levels."""
    with pytest.raises(ConfigError, match="Valid levels: DEBUG, FULL, INFO"):
        load_config(write_config(tmp_path, "log_cli_level: LOUD"))
