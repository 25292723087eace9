"""Configuration loading for spanner-telemetry.

Configuration is loaded from TOML files with environment variable overrides.

Usage:
    from spanner_telemetry.config import get_settings

    settings = get_settings()
    interval = settings.observability.export_interval_seconds
"""

from functools import lru_cache

from pydantic import ValidationError

from spanner_telemetry.config.loader import load_config
from spanner_telemetry.config.project import resolve_project_id
from spanner_telemetry.config.settings import REQUIRED_ENV_VARS, Settings, set_toml_config
from spanner_telemetry.exceptions import ConfigurationError, MissingConfigError


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance.

    The result is cached for the lifetime of the process.
    Call `get_settings.cache_clear()` to reload configuration.

    Raises:
        MissingConfigError: If INSTANCE_ID or DATABASE_ID is not set
        ConfigurationError: If any other setting is invalid
    """
    set_toml_config(load_config())

    try:
        return Settings()
    except ValidationError as e:
        raise _to_configuration_error(e) from e


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


def _to_configuration_error(error: ValidationError) -> ConfigurationError:
    env_names = set(REQUIRED_ENV_VARS.values())
    for detail in error.errors():
        loc = detail["loc"][0] if detail["loc"] else None
        if loc in REQUIRED_ENV_VARS:
            loc = REQUIRED_ENV_VARS[loc]
        if loc in env_names and detail["type"] in ("missing", "string_too_short"):
            return MissingConfigError(
                f"Environment variable {loc} is required and must not be empty",
                setting=str(loc),
            )
    return ConfigurationError(f"Invalid configuration: {error}")


__all__ = ["get_settings", "reload_settings", "resolve_project_id", "Settings"]
