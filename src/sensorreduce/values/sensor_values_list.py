"""Time-ordered lists of sensor values with QC-aware lookup.

A SensorValuesList holds the readings of one logical sensor (one or more
file columns of the same sensor type) in time order. Timestamps are unique:
adding a second value at an existing time is an error.

Values are accessed in two ways:
- Raw: the individual SensorValues, as used by QC
- Values: resolved SensorValuesListValues, as used for data reduction

How raw readings become values depends on the measurement mode:
- CONTINUOUS: regular readings at short intervals (<= 5 minutes). Each
  reading is one value; lookups interpolate between neighbours.
- PERIODIC: short bursts separated by long gaps (e.g. 5 readings every
  4 hours). Each burst is averaged into one value centred on the burst.

FLUSHING readings never appear in values.

Note:
    In PERIODIC mode the automatic grouping cannot tell apart bursts that
    run back to back (e.g. water then air measurements in one wake cycle).
    Range lookups are therefore not supported for PERIODIC lists; callers
    must determine group boundaries themselves and build the value from
    the raw readings.
"""

from __future__ import annotations

import bisect
import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator

from sensorreduce.config import ListSettings
from sensorreduce.exceptions import SensorValuesListError
from sensorreduce.schemas.qc_flags import Flag
from sensorreduce.values import calculators
from sensorreduce.values.list_value import SensorValuesListValue
from sensorreduce.values.sensor_value import SensorValue

if TYPE_CHECKING:
    from sensorreduce.store import SensorType, SensorValueStore

logger = logging.getLogger(__name__)


class MeasurementMode(Enum):
    CONTINUOUS = "continuous"
    PERIODIC = "periodic"


class CacheState(Enum):
    """State of a list's derived data (measurement mode and output values)."""

    ABSENT = "absent"  # Never built
    STALE = "stale"  # Built, then invalidated by a change to the members
    FRESH = "fresh"  # Built from the current members


class SensorValuesList:
    """Time-ordered SensorValues for one sensor, with resolved value lookup.

    Not safe for concurrent use: one thread of control must own a list.
    """

    def __init__(
        self,
        column_ids: int | Iterable[int],
        store: SensorValueStore,
        settings: ListSettings | None = None,
    ) -> None:
        """Create an empty list for one or more file columns.

        Args:
            column_ids: Column ID, or IDs, whose values may join the list
            store: Dataset-wide value store for sensor types and QC messages
            settings: Continuity limit and periodic group size

        Raises:
            ValueError: If no columns are given or they have different
                sensor types
            RecordNotFoundError: If a column has no sensor type
        """
        if isinstance(column_ids, int):
            column_ids = [column_ids]
        column_ids = frozenset(column_ids)
        if not column_ids:
            raise ValueError("At least one column ID is required")

        sensor_type = None
        for column_id in sorted(column_ids):
            column_type = store.get_sensor_type(column_id)
            if sensor_type is None:
                sensor_type = column_type
            elif column_type != sensor_type:
                raise ValueError("All column IDs must be for the same sensor type")

        self._column_ids = column_ids
        self._sensor_type: SensorType = sensor_type
        self._store = store
        self._settings = settings if settings is not None else ListSettings()

        self._members: list[SensorValue] = []
        self._times: list[datetime] = []

        self._cache_state = CacheState.ABSENT
        self._measurement_mode: MeasurementMode | None = None
        self._output_values: list[SensorValuesListValue] = []
        self._value_times: list[datetime] = []

    @classmethod
    def from_sensor_values(
        cls,
        values: Iterable[SensorValue],
        store: SensorValueStore,
        settings: ListSettings | None = None,
    ) -> SensorValuesList:
        """Build a list spanning the columns of the supplied values.

        Raises:
            ValueError: If the values have mixed sensor types or repeat a
                timestamp
        """
        values = list(values)
        sensor_list = cls({v.column_id for v in values}, store, settings)
        sensor_list.add_all(values)
        return sensor_list

    # Properties

    @property
    def column_ids(self) -> frozenset[int]:
        return self._column_ids

    @property
    def sensor_type(self) -> SensorType:
        return self._sensor_type

    @property
    def settings(self) -> ListSettings:
        return self._settings

    @property
    def cache_state(self) -> CacheState:
        return self._cache_state

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[SensorValue]:
        return iter(list(self._members))

    def __repr__(self) -> str:
        return (
            f"SensorValuesList(sensor_type={self._sensor_type.name!r}, "
            f"columns={sorted(self._column_ids)}, raw_size={len(self._members)})"
        )

    def is_empty(self) -> bool:
        return not self._members

    # Mutation

    def _check_addable(self, value: SensorValue | None) -> None:
        if value is None:
            raise ValueError("None values are not permitted")
        if value.column_id not in self._column_ids:
            raise ValueError(
                f"Invalid column ID {value.column_id}; list accepts {sorted(self._column_ids)}"
            )

    def _insertion_point(self, time: datetime) -> int:
        index = bisect.bisect_left(self._times, time)
        if index < len(self._times) and self._times[index] == time:
            raise ValueError(f"Cannot add two SensorValues with the same timestamp ({time})")
        return index

    def _invalidate(self) -> None:
        if self._cache_state is CacheState.FRESH:
            self._cache_state = CacheState.STALE
        self._measurement_mode = None
        self._output_values = []
        self._value_times = []

    def add(self, value: SensorValue) -> None:
        """Insert a value in time order.

        Raises:
            ValueError: If value is None, its column is not part of this list,
                or a value already exists at its timestamp. The list is
                unchanged.
        """
        self._check_addable(value)
        index = self._insertion_point(value.time)
        self._members.insert(index, value)
        self._times.insert(index, value.time)
        self._invalidate()

    def add_all(self, values: Iterable[SensorValue] | SensorValuesList | None) -> None:
        """Add several values, all or none.

        Every value is checked as for add() before any is inserted, so a
        failure leaves the list unchanged.

        Raises:
            ValueError: On the first invalid value, duplicate timestamp within
                the batch, or clash with an existing member
        """
        if values is None:
            return
        if isinstance(values, SensorValuesList):
            values = values._members
        values = list(values)

        batch_times: set[datetime] = set()
        for value in values:
            self._check_addable(value)
            self._insertion_point(value.time)
            if value.time in batch_times:
                raise ValueError(
                    f"Cannot add two SensorValues with the same timestamp ({value.time})"
                )
            batch_times.add(value.time)

        for value in values:
            index = bisect.bisect_left(self._times, value.time)
            self._members.insert(index, value)
            self._times.insert(index, value.time)

        if values:
            self._invalidate()

    def remove(self, value: SensorValue) -> bool:
        """Remove a member. Returns True if the list changed."""
        if value is None:
            return False
        index = bisect.bisect_left(self._times, value.time)
        if index < len(self._members) and self._members[index] == value:
            del self._members[index]
            del self._times[index]
            self._invalidate()
            return True
        return False

    # Measurement mode

    def get_measurement_mode(self) -> MeasurementMode:
        """CONTINUOUS or PERIODIC, computed from the member timestamps.

        Readings are split into runs wherever the gap between neighbours
        exceeds the continuity limit. The list is PERIODIC if there is more
        than one run and either the mean or the largest run size is within
        the periodic group size; otherwise CONTINUOUS.
        """
        if self._measurement_mode is None:
            self._measurement_mode = self._calculate_measurement_mode()
        return self._measurement_mode

    def _calculate_measurement_mode(self) -> MeasurementMode:
        limit = self._settings.continuity_limit_seconds
        max_group = self._settings.max_periodic_group_size

        group_count = 0
        mean_group_size = 0.0
        max_group_size = 0
        group_size = 0

        for i, time in enumerate(self._times):
            if i > 0 and calculators.seconds_between(self._times[i - 1], time) > limit:
                group_count += 1
                mean_group_size += (group_size - mean_group_size) / group_count
                max_group_size = max(max_group_size, group_size)
                group_size = 0
            group_size += 1

        if group_size > 0:
            group_count += 1
            mean_group_size += (group_size - mean_group_size) / group_count
            max_group_size = max(max_group_size, group_size)

        if group_count > 1 and (mean_group_size <= max_group or max_group_size <= max_group):
            mode = MeasurementMode.PERIODIC
        else:
            mode = MeasurementMode.CONTINUOUS

        logger.debug(
            "%s: %d runs (mean %.1f, max %d) -> %s",
            self._sensor_type.name,
            group_count,
            mean_group_size,
            max_group_size,
            mode.value,
        )
        return mode

    # Output values

    def _ensure_output_values(self) -> None:
        if self._cache_state is CacheState.FRESH:
            return

        try:
            if self.get_measurement_mode() is MeasurementMode.CONTINUOUS:
                output_values = self._build_continuous_output_values()
            elif self._contains_string_value():
                output_values = self._build_periodic_string_output_values()
            else:
                output_values = self._build_periodic_numeric_output_values()
        except Exception as e:
            logger.warning("Discarding output values for %r: %s", self, e)
            raise SensorValuesListError(
                f"Failed to build output values for {self._sensor_type.name}: {e}"
            ) from e

        self._output_values = output_values
        self._value_times = [v.time for v in output_values]
        self._cache_state = CacheState.FRESH
        logger.debug(
            "%s: built %d output values from %d readings",
            self._sensor_type.name,
            len(output_values),
            len(self._members),
        )

    def _contains_string_value(self) -> bool:
        return any(not v.is_blank() and not v.is_numeric() for v in self._members)

    def _build_continuous_output_values(self) -> list[SensorValuesListValue]:
        # Drops NO_VALUE placeholders too, not just None payloads
        return [
            SensorValuesListValue.from_sensor_value(v, self._sensor_type, self._store)
            for v in self._members
            if not v.no_value() and v.user_qc_flag is not Flag.FLUSHING
        ]

    def _build_periodic_numeric_output_values(self) -> list[SensorValuesListValue]:
        limit = self._settings.continuity_limit_seconds
        output_values = []
        group: list[SensorValue] = []

        for value in self._members:
            if value.is_nan() or value.user_qc_flag is Flag.FLUSHING:
                continue
            if group and calculators.seconds_between(group[-1].time, value.time) > limit:
                output_values.append(self._make_numeric_value(group))
                group = []
            group.append(value)

        if group:
            output_values.append(self._make_numeric_value(group))

        return output_values

    def _build_periodic_string_output_values(self) -> list[SensorValuesListValue]:
        """Group consecutive identical text values within the continuity limit.

        Blank values neither extend nor break a group.
        """
        limit = self._settings.continuity_limit_seconds
        output_values = []
        group: list[SensorValue] = []

        for value in self._members:
            if value.is_blank() or value.user_qc_flag is Flag.FLUSHING:
                continue
            if group and (
                value.value != group[0].value
                or calculators.seconds_between(group[-1].time, value.time) > limit
            ):
                output_values.append(self._make_string_value(group))
                group = []
            group.append(value)

        if group:
            output_values.append(self._make_string_value(group))

        return output_values

    def _make_numeric_value(self, group: list[SensorValue]) -> SensorValuesListValue:
        return SensorValuesListValue.from_group(group, self._sensor_type, self._store)

    def _make_string_value(self, group: list[SensorValue]) -> SensorValuesListValue:
        first = group[0]
        start_time = first.time
        end_time = group[-1].time
        return SensorValuesListValue(
            start_time=start_time,
            end_time=end_time,
            time=calculators.midpoint(start_time, end_time),
            source_sensor_values=list(group),
            sensor_type=self._sensor_type,
            value=first.value,
            qc_flag=first.display_flag,
            qc_message=self._store.get_qc_message(first),
        )

    def get_values(self) -> list[SensorValuesListValue]:
        """The resolved output values, in time order.

        Raises:
            SensorValuesListError: If the values cannot be built
        """
        self._ensure_output_values()
        return list(self._output_values)

    def values_size(self) -> int:
        self._ensure_output_values()
        return len(self._output_values)

    def get_value_times(self) -> list[datetime]:
        """Times of the output values (group midpoints in PERIODIC mode)."""
        self._ensure_output_values()
        return list(self._value_times)

    # Point lookups

    def get_value(self, time: datetime) -> SensorValuesListValue | None:
        """Resolve the value at a time.

        CONTINUOUS: an exact GOOD match is returned as is. Otherwise the
        nearest GOOD values either side (within the continuity limit; the
        best-flagged value if none is GOOD) are interpolated, and the result
        is used unless an exact match has an equal or better flag.

        PERIODIC: a time inside a group returns the group's value at that
        time. Between groups, the neighbour with the better flag is used,
        or the two are interpolated if their flags are equal.

        Returns:
            The resolved value, or None if nothing is available

        Raises:
            SensorValuesListError: If the output values cannot be built
        """
        self._ensure_output_values()

        if not self._output_values:
            return None
        if self.get_measurement_mode() is MeasurementMode.CONTINUOUS:
            return self._get_value_continuous(time)
        return self._get_value_periodic(time)

    def _get_value_continuous(self, time: datetime) -> SensorValuesListValue | None:
        index = bisect.bisect_left(self._value_times, time)
        exact_match = None
        if index < len(self._value_times) and self._value_times[index] == time:
            exact_match = self._output_values[index]

        if exact_match is not None and exact_match.qc_flag.is_good():
            return exact_match

        prior_index = index - 1
        post_index = index + 1 if exact_match is not None else index

        prior = self._find_interp_continuous_value(prior_index, time, -1)
        post = self._find_interp_continuous_value(post_index, time, 1)
        interpolated = self._build_interpolated_value(prior, post, time)

        if interpolated is None:
            return exact_match
        if exact_match is None or exact_match.qc_flag.more_significant_than(interpolated.qc_flag):
            return interpolated
        return exact_match

    def _find_interp_continuous_value(
        self,
        start_index: int,
        reference_time: datetime,
        step: int,
    ) -> SensorValuesListValue | None:
        """Search from start_index in one direction for an interpolation source.

        Returns the first GOOD value within the continuity limit, otherwise
        the least significantly flagged value seen within it.
        """
        limit = self._settings.continuity_limit_seconds
        result = None
        index = start_index

        while 0 <= index < len(self._output_values):
            candidate = self._output_values[index]
            if abs(calculators.seconds_between(reference_time, candidate.time)) > limit:
                break
            if candidate.qc_flag.is_good():
                return candidate
            if result is None or result.qc_flag.more_significant_than(candidate.qc_flag):
                result = candidate
            index += step

        return result

    def _find_containing_group(self, time: datetime) -> tuple[int, bool]:
        """Binary search for the group spanning time.

        Returns (index, True) for a containing group, otherwise the index
        the time would be inserted at and False.
        """
        lo, hi = 0, len(self._output_values)
        while lo < hi:
            mid = (lo + hi) // 2
            comparison = self._output_values[mid].compare_to_time(time)
            if comparison < 0:
                hi = mid
            elif comparison > 0:
                lo = mid + 1
            else:
                return mid, True
        return lo, False

    def _get_value_periodic(self, time: datetime) -> SensorValuesListValue | None:
        index, contained = self._find_containing_group(time)
        if contained:
            return self._output_values[index].at_time(time)

        prior = self._output_values[index - 1] if index > 0 else None
        post = self._output_values[index] if index < len(self._output_values) else None
        return self._build_interpolated_value(prior, post, time)

    @staticmethod
    def _build_interpolated_value(
        first: SensorValuesListValue | None,
        second: SensorValuesListValue | None,
        target_time: datetime,
    ) -> SensorValuesListValue | None:
        if first is None and second is None:
            return None
        if second is None:
            return first.at_time(target_time, interpolated=True)
        if first is None:
            return second.at_time(target_time, interpolated=True)

        if second.qc_flag.more_significant_than(first.qc_flag):
            return first.at_time(target_time, interpolated=True)
        if first.qc_flag.more_significant_than(second.qc_flag):
            return second.at_time(target_time, interpolated=True)
        return SensorValuesListValue.interpolate(first, second, target_time)

    def get_value_on_or_before(self, time: datetime) -> SensorValuesListValue | None:
        """The output value at time, or the last one before it.

        The continuity limit does not apply.
        """
        self._ensure_output_values()
        index = bisect.bisect_right(self._value_times, time) - 1
        return self._output_values[index] if index >= 0 else None

    def get_value_between(self, start: datetime, end: datetime) -> SensorValuesListValue | None:
        """Aggregate the readings in [start, end] into one value.

        Only readings with the best flag present are averaged; NaN and
        FLUSHING readings are skipped. Always None for PERIODIC lists.

        Raises:
            SensorValuesListError: If the readings cannot be aggregated
        """
        if self.get_measurement_mode() is MeasurementMode.PERIODIC:
            logger.debug("Range lookup on PERIODIC list %r is not supported", self)
            return None

        lo = bisect.bisect_left(self._times, start)
        hi = bisect.bisect_right(self._times, end)
        used = [
            v
            for v in self._members[lo:hi]
            if not v.is_nan() and v.user_qc_flag is not Flag.FLUSHING
        ]
        if not used:
            return None

        try:
            return self._make_numeric_value(used)
        except ValueError as e:
            raise SensorValuesListError(
                f"Failed to build value for {self._sensor_type.name} between {start} and {end}: {e}"
            ) from e

    # Raw access

    def get_raw_values(self) -> list[SensorValue]:
        return list(self._members)

    def get_raw_times(self) -> list[datetime]:
        return list(self._times)

    def raw_size(self) -> int:
        return len(self._members)

    def _raw_index(self, time: datetime) -> int | None:
        index = bisect.bisect_left(self._times, time)
        if index < len(self._times) and self._times[index] == time:
            return index
        return None

    def get_raw_sensor_value(self, time: datetime) -> SensorValue | None:
        """The raw member at exactly this time, for QC use."""
        index = self._raw_index(time)
        return self._members[index] if index is not None else None

    def get_closest_sensor_values(self, time: datetime) -> list[SensorValue]:
        """The member at time, else the members immediately before and after it."""
        index = self._raw_index(time)
        if index is not None:
            return [self._members[index]]

        insertion = bisect.bisect_left(self._times, time)
        result = []
        if insertion > 0:
            result.append(self._members[insertion - 1])
        if insertion < len(self._members):
            result.append(self._members[insertion])
        return result

    def contains_time(self, time: datetime) -> bool:
        return self._raw_index(time) is not None

