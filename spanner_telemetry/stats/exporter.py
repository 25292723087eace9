"""Stats sinks.

Aggregated view data is drained on a background timer by
PeriodicStatsExporter and handed to a StatsExporter. Exporters render view
data through prometheus_client (push to a Pushgateway or serve for scraping)
or write it to the structured log.
"""

import math
import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence

from prometheus_client import CollectorRegistry, push_to_gateway, start_http_server
from prometheus_client.metrics_core import CounterMetricFamily, HistogramMetricFamily, Metric
from prometheus_client.utils import floatToGoString

from spanner_telemetry.observability.logging import get_logger
from spanner_telemetry.stats.aggregation import CountData, DistributionData
from spanner_telemetry.stats.view import ViewData, ViewManager

logger = get_logger(__name__)

_INVALID_METRIC_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


def sanitize_metric_name(name: str) -> str:
    """Convert a view name into a valid Prometheus metric name."""
    sanitized = _INVALID_METRIC_CHARS.sub("_", name)
    if sanitized and sanitized[0].isdigit():
        sanitized = f"_{sanitized}"
    return sanitized


class ViewDataCollector:
    """prometheus_client collector over view data.

    Distribution views become histograms, count views become counters.
    """

    def __init__(self, source: Callable[[], Sequence[ViewData]], namespace: str = "") -> None:
        self._source = source
        self._namespace = namespace

    def _metric_name(self, view_name: str) -> str:
        name = sanitize_metric_name(view_name)
        return f"{self._namespace}_{name}" if self._namespace else name

    def collect(self) -> Iterator[Metric]:
        for view_data in self._source():
            view = view_data.view
            name = self._metric_name(view.name)
            labels = list(view.tag_keys)

            if not view_data.data:
                continue

            sample = next(iter(view_data.data.values()))
            if isinstance(sample, DistributionData):
                histogram = HistogramMetricFamily(name, view.description, labels=labels)
                for tag_values, data in view_data.data.items():
                    histogram.add_metric(
                        list(tag_values),
                        _cumulative_buckets(data),
                        sum_value=data.sum,
                    )
                yield histogram
            elif isinstance(sample, CountData):
                counter = CounterMetricFamily(name, view.description, labels=labels)
                for tag_values, data in view_data.data.items():
                    counter.add_metric(list(tag_values), data.count)
                yield counter


def _cumulative_buckets(data: DistributionData) -> list[tuple[str, float]]:
    # Buckets hold v < boundary; Prometheus "le" means v <= label, so each
    # label is the largest float below its boundary.
    buckets: list[tuple[str, float]] = []
    running = 0
    for boundary, count in zip(data.boundaries, data.bucket_counts, strict=False):
        running += count
        buckets.append((floatToGoString(math.nextafter(boundary, -math.inf)), running))
    buckets.append(("+Inf", data.count))
    return buckets


class StatsExporter(ABC):
    """Sink receiving snapshots of aggregated view data."""

    @abstractmethod
    def export(self, view_data: Sequence[ViewData]) -> None:
        """Push a snapshot to the backend."""

    def shutdown(self) -> None:  # noqa: B027
        """Release exporter resources."""


class LoggingStatsExporter(StatsExporter):
    """Writes view aggregates to the structured log."""

    def export(self, view_data: Sequence[ViewData]) -> None:
        for item in view_data:
            for tag_values, data in item.data.items():
                tags = dict(zip(item.view.tag_keys, tag_values, strict=False))
                if isinstance(data, DistributionData):
                    logger.info(
                        "view_data",
                        view=item.view.name,
                        tags=tags,
                        count=data.count,
                        mean=round(data.mean, 3),
                        min=data.min,
                        max=data.max,
                        bucket_counts=data.bucket_counts,
                    )
                elif isinstance(data, CountData):
                    logger.info("view_data", view=item.view.name, tags=tags, count=data.count)


class PushgatewayStatsExporter(StatsExporter):
    """Pushes view data to a Prometheus Pushgateway."""

    def __init__(
        self,
        gateway: str,
        job: str,
        grouping_key: dict[str, str] | None = None,
        namespace: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.gateway = gateway
        self.job = job
        self.grouping_key = grouping_key or {}
        self.namespace = namespace
        self.timeout = timeout

    def build_registry(self, view_data: Sequence[ViewData]) -> CollectorRegistry:
        registry = CollectorRegistry()
        registry.register(ViewDataCollector(lambda: view_data, namespace=self.namespace))
        return registry

    def export(self, view_data: Sequence[ViewData]) -> None:
        push_to_gateway(
            self.gateway,
            job=self.job,
            registry=self.build_registry(view_data),
            grouping_key=self.grouping_key,
            timeout=self.timeout,
        )
        logger.debug("stats_pushed", gateway=self.gateway, views=len(view_data))


class PeriodicStatsExporter:
    """Drains a ViewManager into an exporter on a background thread."""

    def __init__(
        self,
        view_manager: ViewManager,
        exporter: StatsExporter,
        interval_seconds: float,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Export interval must be positive")
        self._view_manager = view_manager
        self._exporter = exporter
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._is_shutdown = False
        self.export_count = 0
        self._thread = threading.Thread(
            target=self._run,
            name="stats-exporter",
            daemon=True,
        )

    @property
    def exporter(self) -> StatsExporter:
        return self._exporter

    def start(self) -> "PeriodicStatsExporter":
        self._thread.start()
        logger.info(
            "stats_exporter_started",
            exporter=type(self._exporter).__name__,
            interval_seconds=self._interval,
        )
        return self

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.export_once()

    def export_once(self) -> None:
        """Export the current snapshot; failures are logged, not raised."""
        try:
            self._exporter.export(self._view_manager.snapshot())
            self.export_count += 1
        except Exception as e:
            logger.error(
                "stats_export_failed",
                exporter=type(self._exporter).__name__,
                error=str(e),
            )

    def shutdown(self) -> None:
        """Stop the timer thread and perform a final export."""
        with self._shutdown_lock:
            if self._is_shutdown:
                return
            self._is_shutdown = True

        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=self._interval)
        self.export_once()
        self._exporter.shutdown()
        logger.info("stats_exporter_stopped", exports=self.export_count)


def serve_view_metrics(
    view_manager: ViewManager,
    port: int,
    namespace: str = "",
    registry: CollectorRegistry | None = None,
) -> CollectorRegistry:
    """Expose live view data on an HTTP endpoint for Prometheus to scrape."""
    registry = registry or CollectorRegistry()
    registry.register(ViewDataCollector(view_manager.snapshot, namespace=namespace))
    start_http_server(port, registry=registry)
    logger.info("metrics_server_started", port=port)
    return registry
