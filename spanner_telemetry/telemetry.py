"""Instrument definitions and the telemetry context.

The context object bundles what would otherwise be process-wide state (the
measure registry, the view manager, the tracer) so the driver and tests
receive it explicitly.
"""

import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SpanExporter
from opentelemetry.trace import Tracer

from spanner_telemetry.config.settings import Settings
from spanner_telemetry.exceptions import ExporterInitError
from spanner_telemetry.observability.logging import get_logger
from spanner_telemetry.observability.tracing import setup_tracing
from spanner_telemetry.stats import (
    LATENCY_BOUNDARIES_MS,
    CountAggregation,
    DistributionAggregation,
    LoggingStatsExporter,
    Measure,
    MeasureRegistry,
    PeriodicStatsExporter,
    PushgatewayStatsExporter,
    StatsExporter,
    StatsRecorder,
    View,
    ViewManager,
    serve_view_metrics,
)

logger = get_logger(__name__)

READ_LATENCY_MEASURE = "spannerapp/read_latency"
WRITE_LATENCY_MEASURE = "spannerapp/write_latency"
TRANSACTION_SETS_MEASURE = "spannerapp/transaction_set_count"

READ_LATENCY_VIEW = "spannerappmetrics/read_latency"
WRITE_LATENCY_VIEW = "spannerappmetrics/write_latency"
TRANSACTION_SETS_VIEW = "spannerappmetrics/transaction_set_count"

# Tag keys available for grouping
KEY_LATENCY = "latency"
KEY_TRANSACTIONS = "transactions"


@dataclass(frozen=True)
class SpannerMeasures:
    read_latency_ms: Measure
    write_latency_ms: Measure
    transaction_sets: Measure


def define_measures(registry: MeasureRegistry) -> SpannerMeasures:
    """Define the read latency, write latency and transaction count measures."""
    return SpannerMeasures(
        read_latency_ms=registry.define_measure(
            READ_LATENCY_MEASURE, "The latency in milliseconds for read", "ms", kind="float"
        ),
        write_latency_ms=registry.define_measure(
            WRITE_LATENCY_MEASURE, "The latency in milliseconds for write", "ms", kind="float"
        ),
        transaction_sets=registry.define_measure(
            TRANSACTION_SETS_MEASURE, "The count of transactions", "1", kind="int"
        ),
    )


def build_views(
    measures: SpannerMeasures,
    boundaries: Sequence[float] = LATENCY_BOUNDARIES_MS,
) -> list[View]:
    latency_distribution = DistributionAggregation(boundaries)
    return [
        View(
            name=READ_LATENCY_VIEW,
            description="The distribution of the read latencies",
            measure=measures.read_latency_ms,
            aggregation=latency_distribution,
            tag_keys=(KEY_LATENCY,),
        ),
        View(
            name=WRITE_LATENCY_VIEW,
            description="The distribution of the write latencies",
            measure=measures.write_latency_ms,
            aggregation=latency_distribution,
            tag_keys=(KEY_LATENCY,),
        ),
        View(
            name=TRANSACTION_SETS_VIEW,
            description="The number of transaction sets performed",
            measure=measures.transaction_sets,
            aggregation=CountAggregation(),
            tag_keys=(KEY_TRANSACTIONS,),
        ),
    ]


@dataclass
class TelemetryContext:
    """Everything the operation driver needs to trace and record."""

    registry: MeasureRegistry
    view_manager: ViewManager
    recorder: StatsRecorder
    measures: SpannerMeasures
    tracer: Tracer
    tracer_provider: TracerProvider | None = None
    stats_exporters: list[PeriodicStatsExporter] = field(default_factory=list)
    _shutdown: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def create(
        cls, tracer: Tracer, tracer_provider: TracerProvider | None = None
    ) -> "TelemetryContext":
        """Define the measures and register their views.

        Views are registered here, before any recording can happen, so no
        measurement is dropped.
        """
        registry = MeasureRegistry()
        view_manager = ViewManager()
        measures = define_measures(registry)
        view_manager.register_views(build_views(measures))
        return cls(
            registry=registry,
            view_manager=view_manager,
            recorder=StatsRecorder(view_manager),
            measures=measures,
            tracer=tracer,
            tracer_provider=tracer_provider,
        )

    def record_transaction(self, read_latency_ms: float, write_latency_ms: float) -> None:
        """Record one transaction set's latencies and bump the transaction count."""
        (
            self.recorder.new_measurement_map()
            .put(self.measures.read_latency_ms, read_latency_ms)
            .put(self.measures.write_latency_ms, write_latency_ms)
            .put(self.measures.transaction_sets, 1)
            .record()
        )

    def shutdown(self) -> None:
        """Flush and stop every sink. Safe to call more than once."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True

        for exporter in self.stats_exporters:
            exporter.shutdown()
        if self.tracer_provider is not None:
            self.tracer_provider.force_flush()
            self.tracer_provider.shutdown()
        logger.info("telemetry_shutdown")


def create_stats_exporter(settings: Settings, project_id: str) -> StatsExporter | None:
    """Create the stats sink named by the configuration."""
    config = settings.observability.stats
    if config.exporter == "none":
        return None
    if config.exporter == "pushgateway":
        return PushgatewayStatsExporter(
            gateway=config.pushgateway_url,
            job=config.job,
            grouping_key={"project_id": project_id, "instance_id": settings.instance_id},
            namespace=config.namespace,
        )
    return LoggingStatsExporter()


def configure_telemetry(
    settings: Settings,
    project_id: str,
    span_exporter: SpanExporter | None = None,
    stats_exporter: StatsExporter | None = None,
    set_global: bool = True,
) -> TelemetryContext:
    """Configure trace sampling, register views, then start the stats sink.

    Args:
        settings: Application settings
        project_id: Project the telemetry belongs to
        span_exporter: Overrides the configured trace sink
        stats_exporter: Overrides the configured stats sink
        set_global: Install the tracer provider process-wide

    Returns:
        Ready-to-use telemetry context

    Raises:
        ExporterInitError: If a sink cannot be configured
    """
    observability = settings.observability

    provider = setup_tracing(
        observability.tracing,
        project_id=project_id,
        export_interval_seconds=observability.export_interval_seconds,
        span_exporter=span_exporter,
        set_global=set_global,
    )
    context = TelemetryContext.create(
        tracer=provider.get_tracer("spanner_telemetry"),
        tracer_provider=provider,
    )

    exporter = stats_exporter if stats_exporter is not None else create_stats_exporter(
        settings, project_id
    )
    if exporter is not None:
        context.stats_exporters.append(
            PeriodicStatsExporter(
                context.view_manager,
                exporter,
                interval_seconds=observability.export_interval_seconds,
            ).start()
        )

    if observability.stats.metrics_port is not None:
        try:
            serve_view_metrics(
                context.view_manager,
                observability.stats.metrics_port,
                namespace=observability.stats.namespace,
            )
        except OSError as e:
            context.shutdown()
            raise ExporterInitError(
                f"Could not serve metrics on port {observability.stats.metrics_port}: {e}"
            ) from e

    return context
