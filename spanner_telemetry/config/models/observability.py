"""Observability configuration models."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["json", "console"]
SamplerName = Literal["always_on", "always_off", "ratio", "parent_ratio"]
SpanExporterName = Literal["otlp", "console", "none"]
StatsExporterName = Literal["pushgateway", "logging", "none"]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default="json", description="Output format")
    redact_pii: bool = Field(default=True, description="Mask e-mails and secrets in logs")


class TracingConfig(BaseModel):
    """Trace sampling and trace sink configuration."""

    service_name: str = Field(
        default="spanner-telemetry",
        description="Service name attached to exported spans",
    )
    sampler: SamplerName = Field(
        default="parent_ratio",
        description="Sampling policy; always_on is meant for demonstrations only",
    )
    sample_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sampling probability for ratio-based samplers",
    )
    exporter: SpanExporterName = Field(default="otlp", description="Trace sink")
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC endpoint; falls back to OTEL_EXPORTER_OTLP_ENDPOINT",
    )
    otlp_insecure: bool = Field(default=False, description="Use a plaintext channel")
    otlp_certificate_file: Path | None = Field(
        default=None,
        description="PEM root certificates for the OTLP channel",
    )
    otlp_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra metadata sent with every export",
    )
    instrument_grpc: bool = Field(
        default=True,
        description="Trace the database client's gRPC calls",
    )


class StatsConfig(BaseModel):
    """Stats sink configuration."""

    exporter: StatsExporterName = Field(default="logging", description="Stats sink")
    pushgateway_url: str = Field(
        default="localhost:9091",
        description="Prometheus Pushgateway address",
    )
    job: str = Field(default="spanner-telemetry", description="Pushgateway job name")
    namespace: str = Field(default="", description="Prefix for exported metric names")
    metrics_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Serve view data for scraping on this port when set",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    export_interval_seconds: float = Field(
        default=70.0,
        gt=0,
        description="Interval between background exports of spans and stats",
    )
    linger_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Time to wait after the workload; defaults to the export interval plus 10s",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )
    tracing: TracingConfig = Field(
        default_factory=TracingConfig,
        description="Tracing settings",
    )
    stats: StatsConfig = Field(
        default_factory=StatsConfig,
        description="Stats settings",
    )

    @model_validator(mode="after")
    def _default_linger(self) -> "ObservabilityConfig":
        if self.linger_seconds is None:
            self.linger_seconds = self.export_interval_seconds + 10.0
        return self
