"""Measurement recording.

A MeasurementMap is built right before a record call and discarded after
it; individual values are not retained, only folded into view data.
"""

from collections.abc import Mapping

from spanner_telemetry.stats.measure import Measure
from spanner_telemetry.stats.view import ViewManager


class MeasurementMap:
    """A set of values to record together under one tag map."""

    def __init__(self, view_manager: ViewManager) -> None:
        self._view_manager = view_manager
        self._measurements: dict[Measure, float] = {}
        self._recorded = False

    def put(self, measure: Measure, value: float) -> "MeasurementMap":
        """Add a value for a measure, replacing any previous value.

        Raises:
            TypeError: If the value does not match the measure's kind
        """
        self._measurements[measure] = measure.validate(value)
        return self

    def record(self, tags: Mapping[str, str] | None = None) -> None:
        """Record all values.

        Never raises for measures that have no registered view.

        Raises:
            RuntimeError: If this map was already recorded
        """
        if self._recorded:
            raise RuntimeError("MeasurementMap has already been recorded")
        self._recorded = True
        self._view_manager.record(self._measurements, tags)

    def __len__(self) -> int:
        return len(self._measurements)


class StatsRecorder:
    """Entry point for recording measurements into a ViewManager."""

    def __init__(self, view_manager: ViewManager) -> None:
        self.view_manager = view_manager

    def new_measurement_map(self) -> MeasurementMap:
        return MeasurementMap(self.view_manager)
