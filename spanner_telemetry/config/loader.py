"""Layered TOML configuration.

Two optional layers are read from the config directory: ``default.toml``
and ``{environment}.toml``. The environment layer is merged over the base
table by table, so an environment file only needs the keys it changes.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "SPANNER_TELEMETRY_CONFIG_DIR"
ENVIRONMENT_ENV = "SPANNER_TELEMETRY_ENV"
DEFAULT_ENVIRONMENT = "development"

# How far up from the working directory to look for config/
_SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the directory holding the TOML layers.

    An explicit SPANNER_TELEMETRY_CONFIG_DIR must exist. Otherwise the first
    ``config/`` found walking up from the working directory is used, falling
    back to a relative ``config`` path that may not exist.

    Raises:
        FileNotFoundError: If the explicit directory is missing
    """
    explicit = os.environ.get(CONFIG_DIR_ENV)
    if explicit:
        config_dir = Path(explicit)
        if not config_dir.exists():
            raise FileNotFoundError(f"{CONFIG_DIR_ENV} points to a missing directory: {explicit}")
        return config_dir

    cwd = Path.cwd()
    for base in [cwd, *cwd.parents][:_SEARCH_DEPTH]:
        candidate = base / "config"
        if candidate.exists():
            return candidate
    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML layer.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    try:
        with file_path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {file_path}") from e


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base; nested tables merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict[str, Any]:
    """Read and merge the configuration layers that exist.

    Returns:
        Merged table; empty when neither layer exists, in which case the
        model defaults apply
    """
    config_dir = get_config_dir()
    layers = (config_dir / "default.toml", config_dir / f"{get_environment()}.toml")

    config: dict[str, Any] = {}
    for layer in layers:
        if layer.exists():
            config = deep_merge(config, load_toml(layer))
    return config
