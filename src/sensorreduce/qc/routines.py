"""Automatic QC routines for raw sensor values.

Routines only label problems: they add flags to a value's automatic QC
result and never change or delete the reading. Downstream resolution
decides which readings to use based on the flags.

Routines:
- RangeCheckRoutine: reading outside physical bounds
- SpikeCheckRoutine: jump between consecutive readings above a threshold
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from sensorreduce.exceptions import RecordNotFoundError, RoutineError
from sensorreduce.schemas.qc_flags import Flag
from sensorreduce.values.sensor_value import RoutineFlag, SensorValue


class Routine(ABC):
    """Base class for automatic QC routines.

    Parameters are validated when the routine is constructed.
    """

    short_message = "Unspecified QC issue"

    def __init__(self, **parameters: Any) -> None:
        self.parameters = parameters
        self.validate_parameters()

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def validate_parameters(self) -> None:
        """Raise RoutineError if the parameters are invalid."""
        ...

    @abstractmethod
    def qc_values(self, values: list[SensorValue]) -> None:
        """Check values (in time order), flagging any that fail."""
        ...

    def add_flag(
        self,
        value: SensorValue,
        flag: Flag,
        required_value: Any,
        actual_value: Any,
    ) -> None:
        """Record a flag from this routine on a value.

        Raises:
            RoutineError: If the value has not been stored
        """
        routine_flag = RoutineFlag(
            routine_name=self.name,
            flag=flag,
            short_message=self.short_message,
            required_value=str(required_value),
            actual_value=str(actual_value),
        )
        try:
            value.add_auto_qc_flag(routine_flag)
        except RecordNotFoundError as e:
            raise RoutineError(f"{self.name}: sensor value is not stored in the database") from e

    @staticmethod
    def filter_missing_values(values: Iterable[SensorValue]) -> list[SensorValue]:
        return [v for v in values if not v.is_nan()]

    def _flag_parameter(self) -> Flag:
        flag = self.parameters.get("flag", Flag.BAD)
        if flag not in (Flag.QUESTIONABLE, Flag.BAD):
            raise RoutineError(f"{self.name}: flag must be QUESTIONABLE or BAD, got {flag}")
        return flag


class RangeCheckRoutine(Routine):
    """Flag readings outside [min_value, max_value].

    Uses wide physical bounds, not climatological ones.
    """

    short_message = "Out of range"

    def validate_parameters(self) -> None:
        try:
            self.min_value = float(self.parameters["min_value"])
            self.max_value = float(self.parameters["max_value"])
        except KeyError as e:
            raise RoutineError(f"{self.name}: missing parameter {e.args[0]}") from None
        except (TypeError, ValueError) as e:
            raise RoutineError(f"{self.name}: invalid parameter: {e}") from None

        if self.min_value >= self.max_value:
            raise RoutineError(
                f"{self.name}: min_value ({self.min_value}) must be < max_value ({self.max_value})"
            )
        self.flag = self._flag_parameter()

    def qc_values(self, values: list[SensorValue]) -> None:
        for value in self.filter_missing_values(values):
            reading = value.double_value
            if reading < self.min_value or reading > self.max_value:
                self.add_flag(
                    value,
                    self.flag,
                    f"{self.min_value}:{self.max_value}",
                    reading,
                )


class SpikeCheckRoutine(Routine):
    """Flag readings that jump from the previous reading by more than max_delta.

    Missing readings are skipped, so the comparison is with the previous
    reading that has a value. Spikes are flagged, never corrected.
    """

    short_message = "Spike detected"

    def validate_parameters(self) -> None:
        try:
            self.max_delta = float(self.parameters["max_delta"])
        except KeyError:
            raise RoutineError(f"{self.name}: missing parameter max_delta") from None
        except (TypeError, ValueError) as e:
            raise RoutineError(f"{self.name}: invalid parameter: {e}") from None

        if self.max_delta <= 0:
            raise RoutineError(f"{self.name}: max_delta must be positive, got {self.max_delta}")
        self.flag = self._flag_parameter()

    def qc_values(self, values: list[SensorValue]) -> None:
        present = self.filter_missing_values(values)
        for previous, current in zip(present, present[1:]):
            delta = abs(current.double_value - previous.double_value)
            if delta > self.max_delta:
                self.add_flag(current, self.flag, self.max_delta, delta)


def run_routines(values: Iterable[SensorValue], routines: Iterable[Routine]) -> list[SensorValue]:
    """Run QC routines over values in time order.

    Returns:
        The values, sorted by time, with automatic QC flags added
    """
    ordered = sorted(values, key=lambda v: v.time)
    for routine in routines:
        routine.qc_values(ordered)
    return ordered
