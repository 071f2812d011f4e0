"""
Configuration file support.

Settings live in ``.mcpscope.toml``; command-line options override them.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcpscope.domain.exceptions import ConfigError

CONFIG_FILENAME = ".mcpscope.toml"

DEFAULT_CONFIG_TEMPLATE = """# mcpscope configuration

[audit]
# Per-request timeout in milliseconds
timeout_ms = 10000

# Default output format: terminal, json
format = "terminal"

# Write the report to this file instead of stdout
# output = "snapshot.json"

[compare]
# Exit with code 1 when the snapshots differ
fail_on_changes = false

[logging]
# DEBUG, INFO, WARNING or ERROR
level = "WARNING"
"""


class AuditSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_ms: float = Field(default=10000, gt=0)
    format: Literal["terminal", "json"] = "terminal"
    output: Path | None = None


class CompareSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fail_on_changes: bool = False


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"


class ScopeConfig(BaseModel):
    """Contents of a ``.mcpscope.toml`` file."""

    model_config = ConfigDict(extra="forbid")

    audit: AuditSettings = Field(default_factory=AuditSettings)
    compare: CompareSettings = Field(default_factory=CompareSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_config(path: Path | None = None) -> ScopeConfig:
    """
    Load configuration.

    Args:
        path: Explicit config file. When omitted, ``.mcpscope.toml`` in the
            current directory is used if it exists.

    Returns:
        The parsed configuration, or defaults when no file is found.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    if path is None:
        candidate = Path.cwd() / CONFIG_FILENAME
        if not candidate.is_file():
            return ScopeConfig()
        path = candidate

    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        return ScopeConfig.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise ConfigError(f"Invalid config value {key}: {first['msg']}", config_key=key) from e
