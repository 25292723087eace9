"""Stats: measures, views, aggregations and their sinks.

Usage:
    registry = MeasureRegistry()
    latency = registry.define_measure("app/latency", "Latency", "ms")

    view_manager = ViewManager()
    view_manager.register_view(
        View("app/latency", "Latency distribution", latency,
             DistributionAggregation(LATENCY_BOUNDARIES_MS))
    )

    StatsRecorder(view_manager).new_measurement_map().put(latency, 12.5).record()
"""

from spanner_telemetry.stats.aggregation import (
    LATENCY_BOUNDARIES_MS,
    Aggregation,
    AggregationData,
    CountAggregation,
    CountData,
    DistributionAggregation,
    DistributionData,
)
from spanner_telemetry.stats.exporter import (
    LoggingStatsExporter,
    PeriodicStatsExporter,
    PushgatewayStatsExporter,
    StatsExporter,
    ViewDataCollector,
    serve_view_metrics,
)
from spanner_telemetry.stats.measure import Measure, MeasureFloat, MeasureInt, MeasureRegistry
from spanner_telemetry.stats.recorder import MeasurementMap, StatsRecorder
from spanner_telemetry.stats.view import View, ViewData, ViewManager

__all__ = [
    "LATENCY_BOUNDARIES_MS",
    "Aggregation",
    "AggregationData",
    "CountAggregation",
    "CountData",
    "DistributionAggregation",
    "DistributionData",
    "LoggingStatsExporter",
    "Measure",
    "MeasureFloat",
    "MeasureInt",
    "MeasureRegistry",
    "MeasurementMap",
    "PeriodicStatsExporter",
    "PushgatewayStatsExporter",
    "StatsExporter",
    "StatsRecorder",
    "View",
    "ViewData",
    "ViewDataCollector",
    "ViewManager",
    "serve_view_metrics",
]
