"""Numeric and time helpers used when resolving sensor values."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable

import numpy as np


class MeanCalculator:
    """Running arithmetic mean that ignores NaN inputs.

    Example:
        >>> calc = MeanCalculator([1.0, 2.0])
        >>> calc.add(3.0)
        >>> calc.mean()
        2.0
    """

    def __init__(self, values: Iterable[float] | None = None) -> None:
        self._values: list[float] = []
        if values is not None:
            for value in values:
                self.add(value)

    def add(self, value: float | None) -> None:
        if value is None or math.isnan(value):
            return
        self._values.append(float(value))

    @property
    def count(self) -> int:
        return len(self._values)

    def mean(self) -> float:
        """Mean of the added values; NaN if nothing was added."""
        if not self._values:
            return float("nan")
        return float(np.mean(self._values))


def mean(values: Iterable[float | None]) -> float:
    return MeanCalculator(values).mean()


def interpolate(x0: float, y0: float, x1: float, y1: float, x: float) -> float:
    """Linear interpolation (or extrapolation) of y at x through two points.

    If the two x values coincide the first y value is returned.
    """
    if x1 == x0:
        return y0
    return y0 + (y1 - y0) * ((x - x0) / (x1 - x0))


def seconds_between(start: datetime, end: datetime) -> float:
    """Signed number of seconds from start to end."""
    return (end - start).total_seconds()


def midpoint(start: datetime, end: datetime) -> datetime:
    return start + (end - start) / 2


def interpolate_in_time(
    t0: datetime,
    y0: float,
    t1: datetime,
    y1: float,
    target: datetime,
) -> float:
    """Interpolate a value at target between two timestamped values."""
    return interpolate(0.0, y0, seconds_between(t0, t1), y1, seconds_between(t0, target))


def mean_time(times: Iterable[datetime]) -> datetime:
    """Mean of a collection of timestamps.

    Raises:
        ValueError: If no timestamps are supplied
    """
    times = list(times)
    if not times:
        raise ValueError("Cannot compute the mean of no timestamps")

    origin = times[0]
    offsets = [seconds_between(origin, t) for t in times]
    return origin + timedelta(seconds=float(np.mean(offsets)))
