"""Generator configuration and its YAML loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

DEFAULT_CONFIG_NAME = ".splicekit.yaml"


class GeneratorConfig(BaseModel):
    """Settings for a generation run."""

    working_dir: Path = Field(
        default_factory=Path.cwd,
        description="Base directory for relative output and injection paths",
    )
    dry_run: bool = Field(
        default=False,
        description="Compute every change without writing to disk",
    )
    strict_variables: bool = Field(
        default=True,
        description="Treat undefined template variables as render errors",
    )
    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Default variables, overridden by call-time variables",
    )


def load_config(config_path: Path) -> GeneratorConfig:
    """Load generator configuration from a YAML file.

    Relative ``working_dir`` values are resolved against the file's directory.

    Args:
        config_path: Path to the YAML config file

    Returns:
        Validated generator configuration

    Raises:
        ConfigError: If the file cannot be read, parsed, or validated
    """
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg, details={"path": str(config_path)})

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"Failed to parse config YAML: {e}"
        raise ConfigError(msg, details={"path": str(config_path)}) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read config file: {e}"
        raise ConfigError(msg, details={"path": str(config_path)}) from e

    if not isinstance(data, dict):
        msg = "Config file must contain a mapping"
        raise ConfigError(msg, details={"path": str(config_path)})

    if "working_dir" in data and data["working_dir"] is not None:
        working_dir = Path(data["working_dir"])
        if not working_dir.is_absolute():
            data["working_dir"] = config_path.parent / working_dir
    else:
        data["working_dir"] = config_path.parent

    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Config validation failed: {e}"
        raise ConfigError(msg, details={"path": str(config_path)}) from e
