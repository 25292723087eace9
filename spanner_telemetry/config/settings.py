"""Root settings model for spanner-telemetry configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from spanner_telemetry.config.models.observability import ObservabilityConfig
from spanner_telemetry.config.models.workload import WorkloadConfig

# Module-level variable to store TOML config for settings source
_toml_config: dict[str, Any] = {}

# Settings read from plain, unprefixed environment variables
REQUIRED_ENV_VARS: dict[str, str] = {
    "instance_id": "INSTANCE_ID",
    "database_id": "DATABASE_ID",
}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that reads from TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml (base configuration)
    3. config/{SPANNER_TELEMETRY_ENV}.toml (environment overrides)
    4. SPANNER_TELEMETRY_* environment variables (runtime overrides)

    ``INSTANCE_ID`` and ``DATABASE_ID`` are required and read from their
    plain names; ``GOOGLE_CLOUD_PROJECT`` optionally pins the project.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPANNER_TELEMETRY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    app_name: str = Field(default="spanner-telemetry", description="Application name")

    instance_id: str = Field(
        validation_alias="INSTANCE_ID",
        min_length=1,
        description="Spanner instance identifier",
    )
    database_id: str = Field(
        validation_alias="DATABASE_ID",
        min_length=1,
        description="Spanner database identifier",
    )
    project_id: str | None = Field(
        default=None,
        validation_alias="GOOGLE_CLOUD_PROJECT",
        description="Project id; discovered from default credentials when unset",
    )

    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Logging, tracing and stats configuration",
    )
    workload: WorkloadConfig = Field(
        default_factory=WorkloadConfig,
        description="Scripted operation configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority order (highest to lowest): init kwargs, env vars, TOML, defaults."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
