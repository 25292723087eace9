"""Tests for measurement maps and the stats recorder."""

import pytest

from spanner_telemetry.stats.aggregation import CountAggregation, DistributionAggregation
from spanner_telemetry.stats.measure import MeasureRegistry
from spanner_telemetry.stats.recorder import StatsRecorder
from spanner_telemetry.stats.view import View, ViewManager


@pytest.fixture
def registry() -> MeasureRegistry:
    return MeasureRegistry()


class TestMeasurementMap:
    """Tests for MeasurementMap."""

    def test_put_is_chainable(self, registry: MeasureRegistry) -> None:
        latency = registry.define_measure("app/latency", "Latency", "ms")
        count = registry.define_measure("app/count", "Count", "1", kind="int")
        measurement_map = StatsRecorder(ViewManager()).new_measurement_map()

        result = measurement_map.put(latency, 1.0).put(count, 1)

        assert result is measurement_map
        assert len(measurement_map) == 2

    def test_put_validates_kind(self, registry: MeasureRegistry) -> None:
        count = registry.define_measure("app/count", "Count", "1", kind="int")
        with pytest.raises(TypeError):
            StatsRecorder(ViewManager()).new_measurement_map().put(count, 0.5)

    def test_record_without_views_does_not_raise(self, registry: MeasureRegistry) -> None:
        """Recording is independent of whether views are registered yet."""
        latency = registry.define_measure("app/latency", "Latency", "ms")
        StatsRecorder(ViewManager()).new_measurement_map().put(latency, 5.0).record()

    def test_record_twice_raises(self, registry: MeasureRegistry) -> None:
        latency = registry.define_measure("app/latency", "Latency", "ms")
        measurement_map = StatsRecorder(ViewManager()).new_measurement_map().put(latency, 5.0)
        measurement_map.record()
        with pytest.raises(RuntimeError):
            measurement_map.record()


class TestStatsRecorder:
    """Recording through the recorder feeds registered views."""

    def test_count_equals_number_of_records(self, registry: MeasureRegistry) -> None:
        count = registry.define_measure("app/count", "Count", "1", kind="int")
        manager = ViewManager()
        manager.register_view(View("app/count_view", "Count", count, CountAggregation()))
        recorder = StatsRecorder(manager)

        for _ in range(5):
            recorder.new_measurement_map().put(count, 1).record()

        view_data = manager.get_view_data("app/count_view")
        assert view_data is not None
        assert view_data.data[()].count == 5

    def test_record_with_tags(self, registry: MeasureRegistry) -> None:
        latency = registry.define_measure("app/latency", "Latency", "ms")
        manager = ViewManager()
        manager.register_view(
            View("app/latency_view", "Latency", latency, DistributionAggregation([10.0]), ("op",))
        )

        StatsRecorder(manager).new_measurement_map().put(latency, 3.0).record({"op": "read"})

        view_data = manager.get_view_data("app/latency_view")
        assert view_data is not None
        assert view_data.data[("read",)].bucket_counts == [1, 0]
