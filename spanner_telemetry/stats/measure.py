"""Measures: named, typed quantities that can be recorded."""

import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from spanner_telemetry.exceptions import DuplicateMeasureError

MeasureKind = Literal["float", "int"]


@dataclass(frozen=True)
class Measure:
    """A named quantity with a unit and a fixed numeric kind."""

    name: str
    description: str
    unit: str
    kind: MeasureKind

    def validate(self, value: float) -> float:
        """Check a value against this measure's kind.

        Args:
            value: Value about to be recorded

        Returns:
            The value coerced to the measure's kind

        Raises:
            TypeError: If the value is not numeric or is not integral for an
                int measure
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(
                f"Measure {self.name!r} expects a number, got {type(value).__name__}"
            )
        if self.kind == "int":
            if isinstance(value, float):
                if not value.is_integer():
                    raise TypeError(f"Measure {self.name!r} expects an integer, got {value}")
                return int(value)
            return value
        return float(value)


@dataclass(frozen=True)
class MeasureFloat(Measure):
    kind: MeasureKind = "float"


@dataclass(frozen=True)
class MeasureInt(Measure):
    kind: MeasureKind = "int"


class MeasureRegistry:
    """Holds the measures defined for a process.

    Names are unique within a registry. Measures are never removed.
    """

    def __init__(self) -> None:
        self._measures: dict[str, Measure] = {}
        self._lock = threading.Lock()

    def define_measure(
        self,
        name: str,
        description: str,
        unit: str,
        kind: MeasureKind = "float",
    ) -> Measure:
        """Define a new measure.

        Args:
            name: Unique measure name (e.g. "spannerapp/read_latency")
            description: Human-readable description
            unit: Unit string ("ms", "1", ...)
            kind: "float" or "int"; fixed for the measure's lifetime

        Returns:
            The new measure

        Raises:
            DuplicateMeasureError: If the name is already defined
            ValueError: If the name is empty or the kind is unknown
        """
        if not name:
            raise ValueError("Measure name must not be empty")

        if kind == "float":
            measure: Measure = MeasureFloat(name=name, description=description, unit=unit)
        elif kind == "int":
            measure = MeasureInt(name=name, description=description, unit=unit)
        else:
            raise ValueError(f"Unknown measure kind: {kind!r}")

        with self._lock:
            if name in self._measures:
                raise DuplicateMeasureError(f"Measure already defined: {name}")
            self._measures[name] = measure
        return measure

    def get(self, name: str) -> Measure | None:
        return self._measures.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._measures

    def __iter__(self) -> Iterator[Measure]:
        return iter(list(self._measures.values()))

    def __len__(self) -> int:
        return len(self._measures)
