"""Single timestamped sensor readings and their QC state.

A SensorValue is identified by (dataset_id, column_id, time). It carries:
- the raw payload as read from the instrument file (string, may be missing)
- the automatic QC result (flags accumulated from independent routines)
- the user QC flag and message

QC rules:
- Automatic flags only ever accumulate until cleared
- A user flag of NEEDED means automatic QC raised something to review
- FLUSHING is never overridden
- Position QC messages are never silently dropped
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from functools import total_ordering
from typing import Any, Iterable, Iterator

from sensorreduce.exceptions import RecordNotFoundError
from sensorreduce.schemas.qc_flags import Flag, worst_of
from sensorreduce.values import calculators

# Payload marking a matched value that has no reading
NO_VALUE = str(-(2**63))

# QC message for values with no payload
MISSING_QC_COMMENT = "Missing"

# Prefix on user QC messages that were set by position QC
POSITION_QC_PREFIX = "Position QC: "

# Special column IDs for position values
LONGITUDE_COLUMN_ID = -1000
LATITUDE_COLUMN_ID = -1001


@dataclass(frozen=True)
class RoutineFlag:
    """A flag raised by one automatic QC routine."""

    routine_name: str
    flag: Flag
    short_message: str
    required_value: str | None = None
    actual_value: str | None = None

    @property
    def long_message(self) -> str:
        if self.required_value is None and self.actual_value is None:
            return self.short_message
        return (
            f"{self.short_message} (required: {self.required_value}, "
            f"actual: {self.actual_value})"
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["flag"] = self.flag.value
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RoutineFlag:
        d = d.copy()
        d["flag"] = Flag.from_code(d["flag"])
        return cls(**d)


class AutoQCResult:
    """Accumulated flags from the automatic QC routines run on a value."""

    def __init__(self, flags: Iterable[RoutineFlag] | None = None) -> None:
        self._flags: list[RoutineFlag] = list(flags) if flags is not None else []

    def add(self, flag: RoutineFlag) -> None:
        self._flags.append(flag)

    @property
    def overall_flag(self) -> Flag:
        """The most significant flag raised; GOOD if nothing was raised."""
        result = Flag.GOOD
        for routine_flag in self._flags:
            result = worst_of(result, routine_flag.flag)
        return result

    def all_messages(self) -> str:
        return ";".join(f.short_message for f in self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def __iter__(self) -> Iterator[RoutineFlag]:
        return iter(self._flags)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AutoQCResult):
            return NotImplemented
        return self._flags == other._flags

    def to_json(self) -> str:
        return json.dumps([f.to_dict() for f in self._flags])

    @classmethod
    def from_json(cls, json_str: str | None) -> AutoQCResult:
        if json_str is None or json_str == "":
            return cls()
        return cls(RoutineFlag.from_dict(d) for d in json.loads(json_str))


@total_ordering
@dataclass(eq=False)
class SensorValue:
    """A single raw sensor reading.

    Attributes:
        dataset_id: Dataset the value belongs to
        column_id: File column (or special position column) it was read from
        time: Measurement time
        value: Raw payload; None when the reading is missing
        auto_qc: Automatic QC result
        user_qc_flag: User QC flag (ASSUMED_GOOD until QC says otherwise)
        user_qc_message: User QC message
        database_id: Storage ID; None until the value has been saved
        dirty: Whether the value needs saving
        can_be_saved: False for derived copies (e.g. re-timed values)
    """

    dataset_id: int
    column_id: int
    time: datetime
    value: str | None
    auto_qc: AutoQCResult = field(default_factory=AutoQCResult)
    user_qc_flag: Flag = Flag.ASSUMED_GOOD
    user_qc_message: str | None = None
    database_id: int | None = None
    dirty: bool = True
    can_be_saved: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.value, (int, float)) and not isinstance(self.value, bool):
            self.value = None if math.isnan(self.value) else str(self.value)

        if (
            self.value is None
            and self.user_qc_flag is Flag.ASSUMED_GOOD
            and self.user_qc_message is None
        ):
            self.user_qc_flag = Flag.BAD
            self.user_qc_message = MISSING_QC_COMMENT

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SensorValue):
            return NotImplemented
        return (
            self.column_id == other.column_id
            and self.dataset_id == other.dataset_id
            and self.time == other.time
        )

    def __hash__(self) -> int:
        return hash((self.column_id, self.dataset_id, self.time))

    def __lt__(self, other: SensorValue) -> bool:
        return (self.time, self.dataset_id, self.column_id) < (
            other.time,
            other.dataset_id,
            other.column_id,
        )

    def __str__(self) -> str:
        shown = "No Value" if self.no_value() else self.value
        return f"{self.time}: {self.column_id} = {shown}"

    # Payload

    @property
    def double_value(self) -> float:
        """The payload as a float (commas removed); NaN if not numeric."""
        if self.no_value():
            return float("nan")
        try:
            return float(self.value.replace(",", ""))
        except ValueError:
            return float("nan")

    def is_nan(self) -> bool:
        return math.isnan(self.double_value)

    def is_numeric(self) -> bool:
        if self.value is None:
            return False
        try:
            float(self.value.replace(",", ""))
        except ValueError:
            return False
        return True

    def no_value(self) -> bool:
        return self.value is None or self.value == NO_VALUE

    def is_blank(self) -> bool:
        return self.value is None or self.value.strip() == ""

    # QC state

    @property
    def auto_qc_flag(self) -> Flag:
        return self.auto_qc.overall_flag

    def get_user_qc_flag(self, ignore_needed: bool = False) -> Flag:
        if ignore_needed and self.user_qc_flag is Flag.NEEDED:
            return self.auto_qc_flag
        return self.user_qc_flag

    def get_user_qc_message(self, ignore_position: bool = False) -> str:
        result = self.user_qc_message or ""
        if (
            ignore_position
            and result.startswith(POSITION_QC_PREFIX)
            and self.column_id != LONGITUDE_COLUMN_ID
        ):
            result = ""
        return result

    @property
    def display_flag(self) -> Flag:
        return self.auto_qc_flag if self.flag_needed() else self.user_qc_flag

    @property
    def display_qc_message(self) -> str:
        if self.flag_needed():
            return self.auto_qc.all_messages()
        return self.user_qc_message or ""

    def flag_needed(self) -> bool:
        return self.user_qc_flag is Flag.NEEDED

    def has_position_qc(self) -> bool:
        return (self.user_qc_message or "").startswith(POSITION_QC_PREFIX)

    def is_in_database(self) -> bool:
        return self.database_id is not None

    def _require_stored(self) -> None:
        if not self.is_in_database():
            raise RecordNotFoundError("SensorValue has not been stored in the database")

    def _user_qc_unset(self) -> bool:
        return self.user_qc_flag in (Flag.ASSUMED_GOOD, Flag.NEEDED)

    def clear_automatic_qc(self) -> None:
        """Reset the automatic QC, and the user QC if the user never set it.

        Raises:
            RecordNotFoundError: If the value has not been stored
        """
        self._require_stored()
        self.auto_qc = AutoQCResult()

        if self._user_qc_unset():
            self.user_qc_flag = Flag.ASSUMED_GOOD
            self.user_qc_message = None

        self.dirty = True

    def add_auto_qc_flag(self, flag: RoutineFlag) -> None:
        """Add a flag from an automatic QC routine.

        If the user has not set a flag, the user flag becomes NEEDED and the
        message lists every automatic QC message.

        Raises:
            RecordNotFoundError: If the value has not been stored
        """
        self._require_stored()
        self.auto_qc.add(flag)

        if self._user_qc_unset():
            self.user_qc_flag = Flag.NEEDED
            self.user_qc_message = self.auto_qc.all_messages()

        self.dirty = True

    def set_user_qc(self, flag: Flag, message: str | None) -> None:
        """Set the user QC flag and message.

        FLUSHING flags and existing position QC are left in place.
        """
        if self.user_qc_flag is Flag.FLUSHING:
            return
        if POSITION_QC_PREFIX in (self.user_qc_message or ""):
            return
        self._set_user_qc(flag, message)

    def _set_user_qc(self, flag: Flag, message: str | None) -> None:
        self.user_qc_flag = flag
        self.user_qc_message = message
        self.dirty = True

    def _add_user_qc_message(self, message: str) -> None:
        if self.user_qc_message is None:
            self.user_qc_message = message
        else:
            if self.user_qc_message.strip():
                self.user_qc_message += ";"
            self.user_qc_message += message

    def _revert_to_auto_qc(self) -> None:
        if not self.auto_qc_flag.is_good():
            self._set_user_qc(Flag.NEEDED, self.auto_qc.all_messages())
        else:
            self._set_user_qc(Flag.ASSUMED_GOOD, None)

    def set_position_qc(self, position_flag: Flag, position_message: str) -> None:
        """Merge the QC result of the matching position into this value.

        A GOOD position only undoes earlier position QC. A worse position
        replaces the value's QC; an equal one is appended to it.
        """
        current_message = self.user_qc_message or ""
        prefixed = POSITION_QC_PREFIX + position_message

        if position_flag.is_good():
            if POSITION_QC_PREFIX in current_message:
                self._revert_to_auto_qc()
            return

        sensor_flag = self.get_user_qc_flag(ignore_needed=True)
        needed = self.flag_needed()

        if sensor_flag.more_significant_than(position_flag):
            # Only previous position QC is replaced; other QC stays
            if POSITION_QC_PREFIX in current_message:
                self._revert_to_auto_qc()

                if position_flag.more_significant_than(self.auto_qc_flag):
                    self._set_user_qc(position_flag, prefixed)
                elif position_flag is self.auto_qc_flag:
                    self.user_qc_flag = position_flag
                    self._add_user_qc_message(prefixed)
        elif position_flag.more_significant_than(sensor_flag):
            self._set_user_qc(position_flag, prefixed)
        else:
            if POSITION_QC_PREFIX not in current_message:
                self._add_user_qc_message(prefixed)
            if needed:
                self.user_qc_flag = position_flag
            self.dirty = True

    # Copies

    def with_time(self, new_time: datetime) -> SensorValue:
        """Copy this value to a new timestamp. The copy cannot be saved."""
        return replace(self, time=new_time, dirty=False, can_be_saved=False)

    def no_value_copy(self) -> SensorValue:
        """Copy this value with the NO_VALUE payload and NO_QC flag."""
        clone = replace(self, value=NO_VALUE)
        clone.set_user_qc(Flag.NO_QC, "No Value")
        return clone

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.database_id,
            "dataset_id": self.dataset_id,
            "column_id": self.column_id,
            "ts_utc": self.time,
            "value": self.value,
            "auto_qc": self.auto_qc.to_json(),
            "user_qc_flag": self.user_qc_flag.value,
            "user_qc_message": self.user_qc_message,
        }


def clear_dirty_flag(values: Iterable[SensorValue]) -> None:
    for value in values:
        value.dirty = False


def mean_time(values: Iterable[SensorValue], include_nan: bool = False) -> datetime:
    """Mean timestamp of a set of values, optionally skipping NaN values."""
    return calculators.mean_time(
        v.time for v in values if include_nan or not v.is_nan()
    )


def mean_value(values: Iterable[SensorValue]) -> float:
    """Mean numeric value of a set of values. NaN values are ignored."""
    return calculators.mean(v.double_value for v in values)


def interpolate(
    prior: SensorValue | None,
    post: SensorValue | None,
    time: datetime,
) -> float | None:
    """Linear interpolation between two values at the given time.

    With only one value available its own value is returned.
    """
    if prior is not None and post is not None:
        return calculators.interpolate_in_time(
            prior.time, prior.double_value, post.time, post.double_value, time
        )
    if prior is not None:
        return prior.double_value
    if post is not None:
        return post.double_value
    return None


def combined_display_flag(values: Iterable[SensorValue | None]) -> Flag:
    result = Flag.GOOD
    for value in values:
        if value is not None:
            result = worst_of(result, value.display_flag)
    return result


def combined_qc_comment(values: Iterable[SensorValue | None]) -> str:
    comments = []
    for value in values:
        if value is not None:
            comment = value.display_qc_message.strip()
            if comment:
                comments.append(comment)
    return ";".join(comments)


def all_user_qc_needed(values: Iterable[SensorValue]) -> bool:
    """True if no value has had its user QC set by a person."""
    return all(v.user_qc_flag in (Flag.NEEDED, Flag.ASSUMED_GOOD) for v in values)
