"""Registry of SensorValuesLists for a dataset, keyed by column.

Columns of one sensor type share a list when their timestamps never
collide. Two columns of the same type read at the same instant (e.g. two
SST sensors on one file row) each get their own list, since a list holds
at most one value per timestamp.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from sensorreduce.config import ListSettings
from sensorreduce.values.sensor_value import SensorValue
from sensorreduce.values.sensor_values_list import SensorValuesList

if TYPE_CHECKING:
    from sensorreduce.store import DatasetSensorValues, SensorType, SensorValueStore

logger = logging.getLogger(__name__)


def _columns_overlap(store: DatasetSensorValues, column_ids: list[int]) -> bool:
    seen = set()
    for column_id in column_ids:
        times = {v.time for v in store.column_values(column_id)}
        if seen & times:
            return True
        seen |= times
    return False


class SensorListRegistry:
    """Map from column ID to the SensorValuesList holding that column.

    Example:
        registry = SensorListRegistry.from_store(store)
        sst = registry[sst_column_id].get_value(time)
        for sensor_list in registry.lists_for_sensor_type(sst_type.id):
            ...
    """

    def __init__(self, store: SensorValueStore, settings: ListSettings | None = None) -> None:
        self._store = store
        self._settings = settings
        self._by_column: dict[int, SensorValuesList] = {}
        self._lists: list[SensorValuesList] = []

    @classmethod
    def from_store(
        cls,
        store: DatasetSensorValues,
        settings: ListSettings | None = None,
    ) -> SensorListRegistry:
        """Build lists holding every value in the store.

        Each sensor type gets one list for all its columns, or one list per
        column if any two of its columns have a value at the same time.
        """
        registry = cls(store, settings)
        for sensor_type in store.sensor_types:
            column_ids = store.columns_for_sensor_type(sensor_type)
            if _columns_overlap(store, column_ids):
                logger.debug(
                    "%s columns %s share timestamps; one list per column",
                    sensor_type.name,
                    column_ids,
                )
                groups = [[column_id] for column_id in column_ids]
            else:
                groups = [column_ids]

            for group in groups:
                sensor_list = registry.register(sensor_type, group)
                for column_id in group:
                    sensor_list.add_all(store.column_values(column_id))
        return registry

    def register(self, sensor_type: SensorType, column_ids: list[int]) -> SensorValuesList:
        """Create and register an empty list for columns of one sensor type.

        Raises:
            ValueError: If a column is already registered or the columns are
                not all of this sensor type
        """
        registered = sorted(set(column_ids) & set(self._by_column))
        if registered:
            raise ValueError(f"Columns {registered} are already registered")

        sensor_list = SensorValuesList(column_ids, self._store, self._settings)
        if sensor_list.sensor_type != sensor_type:
            raise ValueError(
                f"Columns {sorted(column_ids)} are {sensor_list.sensor_type.name}, "
                f"not {sensor_type.name}"
            )

        for column_id in sensor_list.column_ids:
            self._by_column[column_id] = sensor_list
        self._lists.append(sensor_list)
        return sensor_list

    def add(self, value: SensorValue) -> None:
        """Add a value to the list holding its column.

        Raises:
            KeyError: If the value's column is not registered
        """
        self._by_column[value.column_id].add(value)

    def get(self, column_id: int) -> SensorValuesList | None:
        return self._by_column.get(column_id)

    def lists_for_sensor_type(self, sensor_type_id: int) -> list[SensorValuesList]:
        """Lists of one sensor type, ordered by their lowest column ID."""
        return [
            sensor_list for sensor_list in self if sensor_list.sensor_type.id == sensor_type_id
        ]

    def __getitem__(self, column_id: int) -> SensorValuesList:
        return self._by_column[column_id]

    def __contains__(self, column_id: object) -> bool:
        return column_id in self._by_column

    def __iter__(self) -> Iterator[SensorValuesList]:
        """Lists ordered by sensor type ID, then lowest column ID."""
        return iter(
            sorted(
                self._lists,
                key=lambda sensor_list: (sensor_list.sensor_type.id, min(sensor_list.column_ids)),
            )
        )

    def __len__(self) -> int:
        return len(self._lists)
