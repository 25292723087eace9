"""Configuration models for spanner-telemetry."""

from spanner_telemetry.config.models.observability import (
    LoggingConfig,
    ObservabilityConfig,
    StatsConfig,
    TracingConfig,
)
from spanner_telemetry.config.models.workload import WorkloadConfig

__all__ = [
    "LoggingConfig",
    "ObservabilityConfig",
    "StatsConfig",
    "TracingConfig",
    "WorkloadConfig",
]
