"""Dataset-wide sensor value store.

SensorValuesList consults its store for two things only:
- the sensor type assigned to a column
- the QC message of a value in the context of other columns (position)

Anything that provides those two methods can back a list. DatasetSensorValues
is the in-memory implementation used by the loaders and tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, Mapping, Protocol, runtime_checkable

import pandas as pd

from sensorreduce.exceptions import RecordNotFoundError
from sensorreduce.values.sensor_value import (
    LONGITUDE_COLUMN_ID,
    POSITION_QC_PREFIX,
    SensorValue,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorType:
    """Sensor type descriptor assigned to one or more file columns."""

    id: int
    name: str
    units: str | None = None

    def __str__(self) -> str:
        return self.name


@runtime_checkable
class SensorValueStore(Protocol):
    """Protocol for the dataset-wide value store used by SensorValuesList."""

    def get_sensor_type(self, column_id: int) -> SensorType:
        """Return the sensor type assigned to a column.

        Raises:
            RecordNotFoundError: If the column has no sensor type
        """
        ...

    def get_qc_message(self, value: SensorValue, ignore_position: bool = False) -> str:
        """Return the QC message to show for a value."""
        ...


class DatasetSensorValues:
    """In-memory store of every SensorValue in one dataset.

    Values are keyed by (column_id, time); at most one value exists per key.
    """

    def __init__(self, dataset_id: int, sensor_types: Mapping[int, SensorType]) -> None:
        """Initialize an empty store.

        Args:
            dataset_id: Dataset all values must belong to
            sensor_types: Mapping of column ID to its sensor type
        """
        self.dataset_id = dataset_id
        self._sensor_types = dict(sensor_types)
        self._values: dict[int, dict[datetime, SensorValue]] = {}

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        sensor_types: Mapping[int, SensorType],
        dataset_id: int | None = None,
    ) -> DatasetSensorValues:
        """Build a store from a sensor value table.

        Args:
            df: DataFrame with the sensor_values schema
            sensor_types: Mapping of column ID to sensor type
            dataset_id: Dataset to load; inferred when the table holds one

        Raises:
            ValueError: If the table fails validation or spans several
                datasets and no dataset_id is given
        """
        # Local import: sensorreduce.io builds on this module
        from sensorreduce.io import sensor_values_from_frame

        if dataset_id is None:
            dataset_ids = df["dataset_id"].unique().tolist()
            if len(dataset_ids) > 1:
                raise ValueError(
                    f"Table holds several datasets {sorted(dataset_ids)}; pass dataset_id"
                )
            dataset_id = int(dataset_ids[0]) if dataset_ids else 0
        else:
            df = df[df["dataset_id"] == dataset_id]

        store = cls(dataset_id, sensor_types)
        store.add_all(sensor_values_from_frame(df))
        return store

    def add(self, value: SensorValue) -> None:
        """Add a value to the store.

        Raises:
            ValueError: If the value is from another dataset or duplicates an
                existing (column, time)
            RecordNotFoundError: If the value's column has no sensor type
        """
        if value.dataset_id != self.dataset_id:
            raise ValueError(
                f"Value from dataset {value.dataset_id} added to dataset {self.dataset_id}"
            )
        self.get_sensor_type(value.column_id)

        column = self._values.setdefault(value.column_id, {})
        if value.time in column:
            raise ValueError(
                f"Column {value.column_id} already has a value at {value.time}"
            )
        column[value.time] = value

    def add_all(self, values: Iterable[SensorValue]) -> None:
        for value in values:
            self.add(value)

    def get(self, column_id: int, time: datetime) -> SensorValue | None:
        return self._values.get(column_id, {}).get(time)

    def column_values(self, column_id: int) -> list[SensorValue]:
        """All values for a column in time order."""
        return sorted(self._values.get(column_id, {}).values())

    @property
    def column_ids(self) -> list[int]:
        return sorted(self._values)

    def columns_for_sensor_type(self, sensor_type: SensorType) -> list[int]:
        return sorted(
            column_id
            for column_id, assigned in self._sensor_types.items()
            if assigned == sensor_type
        )

    @property
    def sensor_types(self) -> list[SensorType]:
        return sorted(set(self._sensor_types.values()), key=lambda t: t.id)

    def get_sensor_type(self, column_id: int) -> SensorType:
        try:
            return self._sensor_types[column_id]
        except KeyError:
            raise RecordNotFoundError(
                f"No sensor type assigned to column {column_id}"
            ) from None

    def get_qc_message(self, value: SensorValue, ignore_position: bool = False) -> str:
        """QC message for a value, resolving position QC from the position column.

        A value whose QC came from position QC reports the current message of
        the longitude value at the same time. With ignore_position the
        position part is dropped.
        """
        if value.flag_needed():
            return value.auto_qc.all_messages()

        message = value.get_user_qc_message(ignore_position)
        if (
            ignore_position
            or not value.has_position_qc()
            or value.column_id == LONGITUDE_COLUMN_ID
        ):
            return message

        position = self.get(LONGITUDE_COLUMN_ID, value.time)
        if position is None:
            logger.debug("No position value at %s for position QC message", value.time)
            return message

        position_message = position.display_qc_message
        if not position_message:
            return message
        return POSITION_QC_PREFIX + position_message

    def __len__(self) -> int:
        return sum(len(column) for column in self._values.values())

    def __iter__(self) -> Iterator[SensorValue]:
        for column_id in self.column_ids:
            yield from self.column_values(column_id)
