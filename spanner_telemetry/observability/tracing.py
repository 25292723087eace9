"""OpenTelemetry tracing setup.

Configures the sampling policy, the trace sink and the tracer provider whose
spans wrap the database operations. Spans are batched and exported on a
background schedule aligned with the stats export interval.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import grpc
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.grpc import GrpcInstrumentorClient
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBasedTraceIdRatio,
    Sampler,
    TraceIdRatioBased,
)
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

from spanner_telemetry.config.models.observability import TracingConfig
from spanner_telemetry.exceptions import ExporterInitError
from spanner_telemetry.observability.logging import get_logger

logger = get_logger(__name__)

_grpc_instrumentor: GrpcInstrumentorClient | None = None


def build_sampler(config: TracingConfig) -> Sampler:
    """Build the sampler named by the configuration.

    ``always_on`` samples every trace and suits demonstrations; ratio based
    samplers bound tracing overhead under load.
    """
    if config.sampler == "always_on":
        return ALWAYS_ON
    if config.sampler == "always_off":
        return ALWAYS_OFF
    if config.sampler == "ratio":
        return TraceIdRatioBased(config.sample_rate)
    return ParentBasedTraceIdRatio(config.sample_rate)


def create_span_exporter(config: TracingConfig) -> SpanExporter | None:
    """Create the trace sink.

    Returns:
        Span exporter, or None when the sink is disabled

    Raises:
        ExporterInitError: If credentials or the exporter cannot be set up
    """
    if config.exporter == "none":
        return None
    if config.exporter == "console":
        return ConsoleSpanExporter(service_name=config.service_name)

    endpoint = config.otlp_endpoint or os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        raise ExporterInitError(
            "OTLP trace exporter needs an endpoint: set observability.tracing.otlp_endpoint "
            "or OTEL_EXPORTER_OTLP_ENDPOINT"
        )

    credentials = None
    if config.otlp_certificate_file is not None and not config.otlp_insecure:
        try:
            root_certificates = config.otlp_certificate_file.read_bytes()
        except OSError as e:
            raise ExporterInitError(
                f"Could not read OTLP certificate file {config.otlp_certificate_file}: {e}"
            ) from e
        credentials = grpc.ssl_channel_credentials(root_certificates=root_certificates)

    try:
        exporter = OTLPSpanExporter(
            endpoint=endpoint,
            insecure=config.otlp_insecure,
            credentials=credentials,
            headers=config.otlp_headers or None,
        )
    except Exception as e:
        raise ExporterInitError(f"Could not create OTLP trace exporter: {e}") from e

    logger.info("otlp_trace_exporter_configured", endpoint=endpoint, insecure=config.otlp_insecure)
    return exporter


def setup_tracing(
    config: TracingConfig,
    project_id: str,
    export_interval_seconds: float,
    span_exporter: SpanExporter | None = None,
    set_global: bool = True,
) -> TracerProvider:
    """Initialize the tracer provider.

    Args:
        config: Tracing configuration
        project_id: Project the spans belong to
        export_interval_seconds: Batch export schedule
        span_exporter: Overrides the configured trace sink
        set_global: Install the provider as the process-wide provider so
            client library spans join the same traces

    Returns:
        Configured TracerProvider

    Raises:
        ExporterInitError: If the configured sink cannot be created
    """
    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        "gcp.project_id": project_id,
    })
    provider = TracerProvider(resource=resource, sampler=build_sampler(config))

    exporter = span_exporter if span_exporter is not None else create_span_exporter(config)
    if exporter is not None:
        provider.add_span_processor(
            BatchSpanProcessor(
                exporter,
                schedule_delay_millis=int(export_interval_seconds * 1000),
            )
        )

    if set_global:
        trace.set_tracer_provider(provider)

    if config.instrument_grpc:
        instrument_grpc_client()

    logger.info(
        "tracing_configured",
        sampler=config.sampler,
        sample_rate=config.sample_rate,
        exporter=type(exporter).__name__ if exporter else None,
    )
    return provider


def instrument_grpc_client() -> None:
    """Trace outgoing gRPC calls made by the database client."""
    global _grpc_instrumentor
    if _grpc_instrumentor is not None:
        return
    _grpc_instrumentor = GrpcInstrumentorClient()
    _grpc_instrumentor.instrument()
    logger.debug("grpc_client_instrumented")


@contextmanager
def create_span(
    tracer: Tracer,
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Start a span as the current span; it ends when the block exits.

    Exceptions escaping the block are recorded on the span once and re-raised.
    """
    with tracer.start_as_current_span(
        name,
        kind=kind,
        attributes=attributes or {},
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            record_exception(span, e)
            raise


def record_exception(span: Span, exception: BaseException, escaped: bool = True) -> None:
    """Record an exception on a span and mark it as failed."""
    span.record_exception(exception, escaped=escaped)
    span.set_status(Status(StatusCode.ERROR, str(exception)))


def get_current_trace_id() -> str | None:
    span = trace.get_current_span()
    if span and span.get_span_context().is_valid:
        return format(span.get_span_context().trace_id, "032x")
    return None
