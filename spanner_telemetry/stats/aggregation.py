"""Aggregations fold recorded values into view data.

Two aggregations are supported:
- DistributionAggregation: bucketed histogram over explicit boundaries
- CountAggregation: monotonic tally of recordings
"""

import bisect
import copy
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

# Latency histogram boundaries in milliseconds
LATENCY_BOUNDARIES_MS: tuple[float, ...] = (
    0.0,
    5.0,
    10.0,
    25.0,
    100.0,
    200.0,
    400.0,
    800.0,
    10000.0,
)


class AggregationData(ABC):
    """Mutable accumulator owned by a view; one per tag-value group."""

    @abstractmethod
    def add(self, value: float) -> None:
        """Fold a recorded value into the accumulator."""

    def copy(self) -> "AggregationData":
        return copy.deepcopy(self)


class CountData(AggregationData):
    """Number of recordings seen."""

    def __init__(self) -> None:
        self.count = 0

    def add(self, value: float) -> None:  # noqa: ARG002
        self.count += 1

    def __repr__(self) -> str:
        return f"CountData(count={self.count})"


class DistributionData(AggregationData):
    """Histogram counts plus summary statistics.

    Bucket ``i`` holds values ``v`` with ``boundaries[i - 1] <= v < boundaries[i]``;
    bucket 0 holds values below the first boundary and the last bucket holds
    values at or above the last boundary.
    """

    def __init__(self, boundaries: Sequence[float]) -> None:
        self.boundaries: tuple[float, ...] = tuple(boundaries)
        self.bucket_counts: list[int] = [0] * (len(self.boundaries) + 1)
        self.count = 0
        self.sum = 0.0
        self.mean = 0.0
        self.sum_of_squared_deviation = 0.0
        self.min = math.inf
        self.max = -math.inf

    def bucket_index(self, value: float) -> int:
        """Index of the first boundary strictly greater than value."""
        return bisect.bisect_right(self.boundaries, value)

    def add(self, value: float) -> None:
        self.bucket_counts[self.bucket_index(value)] += 1
        self.count += 1
        self.sum += value
        # Welford's online update
        delta = value - self.mean
        self.mean += delta / self.count
        self.sum_of_squared_deviation += delta * (value - self.mean)
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def __repr__(self) -> str:
        return (
            f"DistributionData(count={self.count}, sum={self.sum}, "
            f"bucket_counts={self.bucket_counts})"
        )


class Aggregation(ABC):
    """Aggregation policy bound to a view."""

    name: str = "aggregation"

    @abstractmethod
    def new_data(self) -> AggregationData:
        """Create an empty accumulator for this aggregation."""


class CountAggregation(Aggregation):
    """Counts recordings, ignoring the recorded value."""

    name = "count"

    def new_data(self) -> CountData:
        return CountData()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CountAggregation)

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return "CountAggregation()"


class DistributionAggregation(Aggregation):
    """Bucketed histogram over an ascending list of boundaries."""

    name = "distribution"

    def __init__(self, boundaries: Sequence[float]) -> None:
        if not boundaries:
            raise ValueError("Distribution requires at least one bucket boundary")
        for lower, upper in zip(boundaries, boundaries[1:], strict=False):
            if upper <= lower:
                raise ValueError(
                    f"Bucket boundaries must be strictly ascending: {list(boundaries)}"
                )
        self.boundaries: tuple[float, ...] = tuple(float(b) for b in boundaries)

    def new_data(self) -> DistributionData:
        return DistributionData(self.boundaries)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DistributionAggregation) and other.boundaries == self.boundaries

    def __hash__(self) -> int:
        return hash((self.name, self.boundaries))

    def __repr__(self) -> str:
        return f"DistributionAggregation(boundaries={list(self.boundaries)})"
