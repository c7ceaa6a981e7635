"""Configuration loading and validation for export-tool."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator
from platformdirs import user_config_dir, user_documents_dir, user_log_dir

from exporttool.core.errors import ConfigError
from exporttool.core.logging import LogLevel

APP_NAME = "export-tool"
DEFAULT_API_URL = "https://mail-api.proton.me"
DEFAULT_MAX_LOGIN_ATTEMPTS = 3
DEFAULT_POLL_INTERVAL = 0.1

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "log_file_level": {"type": "string"},
        "log_cli_level": {"type": "string"},
        "log_dir": {"type": "string", "minLength": 1},
        "output_dir": {"type": "string", "minLength": 1},
        "session": {
            "type": "object",
            "properties": {
                "backend": {"type": "string", "pattern": r"^[\w.]+:\w+$"},
                "api_url": {"type": "string", "minLength": 1},
                "telemetry": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "login": {
            "type": "object",
            "properties": {
                "max_attempts": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": False,
        },
        "runner": {
            "type": "object",
            "properties": {
                "poll_interval": {"type": "number", "exclusiveMinimum": 0, "maximum": 5},
            },
            "additionalProperties": False,
        },
        "version_check": {"type": "boolean"},
    },
    "additionalProperties": False,
}


def default_config_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / "config.yaml"


def default_log_dir() -> Path:
    return Path(user_log_dir(APP_NAME))


def default_output_dir() -> Path:
    return Path(user_documents_dir()) / APP_NAME


@dataclass
class Configuration:
    """Parsed and validated configuration for export-tool.

    Attributes:
        log_file_level: Minimum level for file logging
        log_cli_level: Minimum level for terminal display
        log_dir: Directory receiving one log file per run
        output_dir: Platform output directory; default backup paths live below it
        session_backend: ``package.module:callable`` creating the session, if set
        api_url: Service URL handed to the session
        telemetry_enabled: Whether the session may send telemetry
        max_login_attempts: Consecutive failures of one login step before giving up
        poll_interval: Seconds between task runner polls
        version_check: Whether to check for a newer release before login
        config_path: Path the configuration was loaded from
    """

    log_file_level: LogLevel = LogLevel.FULL
    log_cli_level: LogLevel = LogLevel.WARNING
    log_dir: Path = field(default_factory=default_log_dir)
    output_dir: Path = field(default_factory=default_output_dir)
    session_backend: str | None = None
    api_url: str = DEFAULT_API_URL
    telemetry_enabled: bool = True
    max_login_attempts: int = DEFAULT_MAX_LOGIN_ATTEMPTS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    version_check: bool = True
    config_path: Path | None = None


def load_config(path: Path | None = None) -> Configuration:
    """Load configuration from a YAML file.

    Args:
        path: Explicit config file. If None, the default location is used and a
            missing file yields the defaults.

    Returns:
        Validated Configuration object

    Raises:
        ConfigError: If the file is unreadable or invalid, or an explicit path doesn't exist
    """
    explicit = path is not None
    if path is None:
        path = default_config_path()

    if not path.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {path}")
        return Configuration()

    try:
        with path.open("r") as f:
            config_dict = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")

    validate_config_structure(config_dict, path)
    return _build_configuration(config_dict, path)


def validate_config_structure(config_dict: dict[str, Any], config_path: Path) -> None:
    """Validate the configuration against CONFIG_SCHEMA.

    Args:
        config_dict: Configuration dictionary from YAML
        config_path: Path to config file (for error messages)

    Raises:
        ConfigError: Listing every schema violation
    """
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(config_dict), key=lambda e: list(e.absolute_path))
    if errors:
        details = [f"  - {'.'.join(str(p) for p in e.absolute_path) or '(root)'}: {e.message}" for e in errors]
        raise ConfigError(f"Invalid configuration in {config_path}:\n" + "\n".join(details))

    if "log_file_level" in config_dict:
        _parse_log_level(config_dict["log_file_level"])  # Will raise if invalid

    if "log_cli_level" in config_dict:
        _parse_log_level(config_dict["log_cli_level"])  # Will raise if invalid


def _build_configuration(config_dict: dict[str, Any], path: Path) -> Configuration:
    session = config_dict.get("session", {})
    login = config_dict.get("login", {})
    runner = config_dict.get("runner", {})
    defaults = Configuration()

    return Configuration(
        log_file_level=_parse_log_level(config_dict.get("log_file_level", defaults.log_file_level.name)),
        log_cli_level=_parse_log_level(config_dict.get("log_cli_level", defaults.log_cli_level.name)),
        log_dir=_expand(config_dict["log_dir"]) if "log_dir" in config_dict else defaults.log_dir,
        output_dir=_expand(config_dict["output_dir"]) if "output_dir" in config_dict else defaults.output_dir,
        session_backend=session.get("backend"),
        api_url=session.get("api_url", DEFAULT_API_URL),
        telemetry_enabled=session.get("telemetry", True),
        max_login_attempts=login.get("max_attempts", DEFAULT_MAX_LOGIN_ATTEMPTS),
        poll_interval=float(runner.get("poll_interval", DEFAULT_POLL_INTERVAL)),
        version_check=config_dict.get("version_check", True),
        config_path=path,
    )


def _expand(value: str) -> Path:
    return Path(value).expanduser()


def _parse_log_level(level_str: str) -> LogLevel:
    """Parse log level string to LogLevel enum.

    Raises:
        ConfigError: If log level string is invalid
    """
    try:
        return LogLevel[level_str.upper()]
    except KeyError as e:
        valid_levels = ", ".join(level.name for level in LogLevel)
        raise ConfigError(f"Invalid log level '{level_str}'. Valid levels: {valid_levels}") from e
