"""Views bind a measure to an aggregation and grouping tag keys.

The ViewManager owns the aggregation buffers. A value recorded against a
measure is retained only by views registered before the recording; values
for measures without a registered view are dropped.
"""

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from spanner_telemetry.exceptions import DuplicateViewError
from spanner_telemetry.observability.logging import get_logger
from spanner_telemetry.stats.aggregation import Aggregation, AggregationData
from spanner_telemetry.stats.measure import Measure

logger = get_logger(__name__)

TagValues = tuple[str, ...]


@dataclass(frozen=True)
class View:
    """Aggregation policy for one measure."""

    name: str
    description: str
    measure: Measure
    aggregation: Aggregation
    tag_keys: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("View name must not be empty")
        object.__setattr__(self, "tag_keys", tuple(self.tag_keys))

    def tag_values(self, tags: Mapping[str, str]) -> TagValues:
        """Project a tag map onto this view's tag keys."""
        return tuple(tags.get(key, "") for key in self.tag_keys)


@dataclass
class ViewData:
    """Snapshot of a view's aggregated state."""

    view: View
    start_time: datetime
    end_time: datetime | None = None
    data: dict[TagValues, AggregationData] = field(default_factory=dict)

    def record(self, value: float, tag_values: TagValues) -> None:
        bucket = self.data.get(tag_values)
        if bucket is None:
            bucket = self.view.aggregation.new_data()
            self.data[tag_values] = bucket
        bucket.add(value)

    def snapshot(self) -> "ViewData":
        return ViewData(
            view=self.view,
            start_time=self.start_time,
            end_time=datetime.now(UTC),
            data={key: value.copy() for key, value in self.data.items()},
        )


class ViewManager:
    """Registers views and accumulates recorded measurements into them.

    Safe for concurrent recorders and a concurrent background exporter.
    """

    def __init__(self) -> None:
        self._views: dict[str, View] = {}
        self._view_data: dict[str, ViewData] = {}
        self._views_by_measure: dict[str, list[View]] = {}
        self._lock = threading.Lock()

    def register_view(self, view: View) -> None:
        """Make a view live.

        Registering the same view again is a no-op.

        Raises:
            DuplicateViewError: If a different view already uses the name
        """
        with self._lock:
            existing = self._views.get(view.name)
            if existing is not None:
                if existing == view:
                    logger.debug("view_already_registered", view=view.name)
                    return
                raise DuplicateViewError(f"A different view is already registered: {view.name}")

            self._views[view.name] = view
            self._view_data[view.name] = ViewData(view=view, start_time=datetime.now(UTC))
            self._views_by_measure.setdefault(view.measure.name, []).append(view)

        logger.info(
            "view_registered",
            view=view.name,
            measure=view.measure.name,
            aggregation=view.aggregation.name,
        )

    def register_views(self, views: Iterable[View]) -> None:
        for view in views:
            self.register_view(view)

    def record(
        self,
        measurements: Mapping[Measure, float],
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Fold measurements into every view bound to their measures."""
        tags = tags or {}
        with self._lock:
            for measure, value in measurements.items():
                views = self._views_by_measure.get(measure.name)
                if not views:
                    logger.debug("measurement_dropped", measure=measure.name, reason="no_view")
                    continue
                for view in views:
                    self._view_data[view.name].record(value, view.tag_values(tags))

    def get_view(self, name: str) -> View | None:
        return self._views.get(name)

    def get_view_data(self, name: str) -> ViewData | None:
        """Return a copy of one view's aggregated state, or None if unknown."""
        with self._lock:
            view_data = self._view_data.get(name)
            return view_data.snapshot() if view_data is not None else None

    def snapshot(self) -> list[ViewData]:
        """Return copies of all views' aggregated state."""
        with self._lock:
            return [view_data.snapshot() for view_data in self._view_data.values()]

    @property
    def views(self) -> list[View]:
        return list(self._views.values())
