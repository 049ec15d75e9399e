"""Configuration loading for sysmaster-testkit."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from sysmaster_testkit.models import HarnessConfig

# Environment variable naming an alternative config file
CONFIG_ENV_VAR = "SYSMST_TESTKIT_CONFIG"


class HarnessError(Exception):
    """Base class for sysmaster-testkit errors."""


class ConfigError(HarnessError):
    """Configuration error."""

    pass


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports:
    - ${env:VAR_NAME} - environment variable
    - $VAR_NAME or ${VAR_NAME} - standard env var expansion
    """
    def replace_env(match: re.Match[str]) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, "")

    value = re.sub(r"\$\{env:([^}]+)\}", replace_env, value)

    return os.path.expandvars(value)


def expand_values(data: Any) -> Any:
    """Recursively expand ``~`` and environment variables in string values."""
    if isinstance(data, dict):
        return {k: expand_values(v) for k, v in data.items()}
    if isinstance(data, list):
        return [expand_values(v) for v in data]
    if isinstance(data, str):
        return os.path.expanduser(expand_env_vars(data))
    return data


def load_yaml_file(path: Path) -> dict:
    """Load a YAML file."""
    if not path.exists():
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {path}: expected a mapping, got {type(data).__name__}")

    return data


def resolve_config_path(config_path: Path | None = None) -> Path | None:
    """Pick the config file: explicit argument first, then the environment."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return None


def load_config(config_path: Path | None = None) -> HarnessConfig:
    """Load the harness configuration, falling back to defaults."""
    path = resolve_config_path(config_path)

    if path is None:
        logger.debug("No config file given, using defaults")
        return HarnessConfig()

    if not path.exists():
        logger.info(f"Config file not found at {path}, using defaults")
        return HarnessConfig()

    try:
        data = expand_values(load_yaml_file(path))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    try:
        config = HarnessConfig.model_validate(data)
        logger.debug(f"Loaded config from {path}")
        return config
    except Exception as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def dump_config(config: HarnessConfig) -> str:
    """Render a configuration as YAML."""
    return yaml.safe_dump(
        config.model_dump(mode="json"),
        default_flow_style=False,
        sort_keys=False,
    )
