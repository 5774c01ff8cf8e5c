"""Resolved values produced by a SensorValuesList.

A SensorValuesListValue is what queries return. It may stand for:
- a single raw reading (CONTINUOUS lists)
- a group of readings from one burst (PERIODIC lists)
- an interpolation between two resolved values (built per query, never stored)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable

from sensorreduce.schemas.qc_flags import Flag, worst_of
from sensorreduce.values import calculators
from sensorreduce.values.sensor_value import SensorValue

if TYPE_CHECKING:
    from sensorreduce.store import SensorType, SensorValueStore


def _join_messages(messages: Iterable[str | None]) -> str:
    return ";".join(m.strip() for m in messages if m is not None and m.strip())


@dataclass
class SensorValuesListValue:
    """A value resolved from one or more raw SensorValues.

    Attributes:
        start_time: Time of the first contributing reading
        end_time: Time of the last contributing reading
        time: Representative time of the value
        source_sensor_values: Contributing readings in time order (not owned)
        sensor_type: Sensor type of the readings
        value: Numeric value, or the string payload for text sensors
        qc_flag: Resolved QC flag
        qc_message: Resolved QC message
        interpolated: True if built for a query rather than read directly
    """

    start_time: datetime
    end_time: datetime
    time: datetime
    source_sensor_values: list[SensorValue]
    sensor_type: SensorType
    value: float | str | None
    qc_flag: Flag
    qc_message: str = ""
    interpolated: bool = False
    _member_times: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.source_sensor_values = sorted(self.source_sensor_values, key=lambda v: v.time)
        self._member_times = frozenset(v.time for v in self.source_sensor_values)

    @classmethod
    def from_sensor_value(
        cls,
        sensor_value: SensorValue,
        sensor_type: SensorType,
        store: SensorValueStore | None = None,
    ) -> SensorValuesListValue:
        """Wrap a single reading, copying its value, flag and message."""
        if sensor_value.is_numeric():
            value: float | str | None = sensor_value.double_value
        else:
            value = sensor_value.value

        if store is not None:
            message = store.get_qc_message(sensor_value)
        else:
            message = sensor_value.display_qc_message

        return cls(
            start_time=sensor_value.time,
            end_time=sensor_value.time,
            time=sensor_value.time,
            source_sensor_values=[sensor_value],
            sensor_type=sensor_type,
            value=value,
            qc_flag=sensor_value.display_flag,
            qc_message=message,
        )

    @classmethod
    def from_group(
        cls,
        sensor_values: list[SensorValue],
        sensor_type: SensorType,
        store: SensorValueStore | None = None,
    ) -> SensorValuesListValue:
        """Aggregate a group of numeric readings into one value.

        Only readings with the best flag present are used: GOOD, then
        QUESTIONABLE, then BAD. The value is their mean and the message joins
        their messages. The time span covers every non-NaN, non-FLUSHING
        reading in the group regardless of flag.

        Raises:
            ValueError: If the group has no usable readings or none of them
                has a GOOD, QUESTIONABLE or BAD flag
        """
        timestamps = [
            v.time
            for v in sensor_values
            if not v.is_nan() and v.display_flag is not Flag.FLUSHING
        ]
        if not timestamps:
            raise ValueError("No usable readings in group")

        start_time = timestamps[0]
        end_time = timestamps[-1]

        present_flags = {v.display_flag.simplified() for v in sensor_values}
        for candidate in (Flag.GOOD, Flag.QUESTIONABLE, Flag.BAD):
            if candidate in present_flags:
                chosen_flag = candidate
                break
        else:
            raise ValueError(
                f"No valid flags in sensor values (found {sorted(f.label for f in present_flags)})"
            )

        used_values = [v for v in sensor_values if v.display_flag.simplified() is chosen_flag]

        if store is not None:
            messages = [store.get_qc_message(v) for v in used_values]
        else:
            messages = [v.display_qc_message for v in used_values]

        return cls(
            start_time=start_time,
            end_time=end_time,
            time=calculators.midpoint(start_time, end_time),
            source_sensor_values=used_values,
            sensor_type=sensor_type,
            value=calculators.mean(v.double_value for v in used_values),
            qc_flag=chosen_flag,
            qc_message=_join_messages(messages),
        )

    @classmethod
    def interpolate(
        cls,
        first: SensorValuesListValue,
        second: SensorValuesListValue,
        target_time: datetime,
    ) -> SensorValuesListValue:
        """Linear interpolation between two values at target_time.

        Members of both values are combined and the flag is the worse of
        the two. Text values cannot be interpolated; the first value is
        returned at the target time instead.
        """
        if not (first.is_numeric() and second.is_numeric()):
            return first.at_time(target_time, interpolated=True)

        value = calculators.interpolate_in_time(
            first.time, first.double_value, second.time, second.double_value, target_time
        )

        combined = {v.time: v for v in first.source_sensor_values}
        for v in second.source_sensor_values:
            combined.setdefault(v.time, v)

        return cls(
            start_time=first.start_time,
            end_time=second.end_time,
            time=target_time,
            source_sensor_values=list(combined.values()),
            sensor_type=first.sensor_type,
            value=value,
            qc_flag=worst_of(first.qc_flag, second.qc_flag),
            qc_message=_join_messages([first.qc_message, second.qc_message]),
            interpolated=True,
        )

    def at_time(self, new_time: datetime, interpolated: bool = False) -> SensorValuesListValue:
        """The same value (members, value, flag) at another representative time."""
        return replace(self, time=new_time, interpolated=self.interpolated or interpolated)

    def is_numeric(self) -> bool:
        return isinstance(self.value, (int, float)) and not isinstance(self.value, bool)

    @property
    def double_value(self) -> float:
        if self.is_numeric():
            return float(self.value)
        if self.value is None:
            return float("nan")
        try:
            return float(str(self.value).replace(",", ""))
        except ValueError:
            return float("nan")

    def is_nan(self) -> bool:
        return math.isnan(self.double_value)

    def compare_to_time(self, time: datetime) -> int:
        """-1 if time is before this value's span, 1 if after, 0 if inside it."""
        if time < self.start_time:
            return -1
        if time > self.end_time:
            return 1
        return 0

    def contains_member_time(self, time: datetime) -> bool:
        return time in self._member_times

    @property
    def member_count(self) -> int:
        return len(self.source_sensor_values)

    def to_record(self) -> dict[str, Any]:
        """Row for output tables. Text payloads go to text_value, leaving value NaN."""
        return {
            "time": self.time,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "sensor_type": self.sensor_type.name,
            "value": self.double_value if self.is_numeric() else float("nan"),
            "text_value": None if self.is_numeric() else self.value,
            "qc_flag": self.qc_flag.value,
            "qc_message": self.qc_message,
            "member_count": self.member_count,
            "interpolated": self.interpolated,
        }
