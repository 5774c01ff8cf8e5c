"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sensorreduce.schemas.qc_flags import Flag
from sensorreduce.store import DatasetSensorValues, SensorType
from sensorreduce.values.sensor_value import LONGITUDE_COLUMN_ID, SensorValue
from sensorreduce.values.sensor_values_list import SensorValuesList

DATASET_ID = 1
SST_COLUMN = 1
SST_COLUMN_2 = 2
SALINITY_COLUMN = 3
STATUS_COLUMN = 4

SST = SensorType(id=10, name="SST", units="degC")
SALINITY = SensorType(id=11, name="Salinity", units="PSU")
STATUS = SensorType(id=12, name="Status")
POSITION = SensorType(id=13, name="Position", units="degrees")

T0 = datetime(2024, 7, 1, 0, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Time offset from T0 in seconds."""
    return T0 + timedelta(seconds=seconds)


def burst_times(bursts: int, size: int, spacing: int = 10, gap: int = 3600) -> list[datetime]:
    """Timestamps for `bursts` bursts of `size` readings.

    Readings in a burst are `spacing` seconds apart; bursts start `gap`
    seconds apart.
    """
    return [at(b * gap + i * spacing) for b in range(bursts) for i in range(size)]


@pytest.fixture
def sensor_types() -> dict[int, SensorType]:
    return {
        SST_COLUMN: SST,
        SST_COLUMN_2: SST,
        SALINITY_COLUMN: SALINITY,
        STATUS_COLUMN: STATUS,
        LONGITUDE_COLUMN_ID: POSITION,
    }


@pytest.fixture
def store(sensor_types) -> DatasetSensorValues:
    """Empty in-memory store for DATASET_ID."""
    return DatasetSensorValues(DATASET_ID, sensor_types)


@pytest.fixture
def make_sensor_value():
    """Factory fixture for creating SensorValues.

    Values get a database ID by default so automatic QC can be applied.
    """
    counter = iter(range(1, 1_000_000))

    def _make(
        time: datetime,
        value: str | float | None = "10.0",
        column_id: int = SST_COLUMN,
        user_qc_flag: Flag = Flag.ASSUMED_GOOD,
        user_qc_message: str | None = None,
        stored: bool = True,
    ) -> SensorValue:
        return SensorValue(
            dataset_id=DATASET_ID,
            column_id=column_id,
            time=time,
            value=value,
            user_qc_flag=user_qc_flag,
            user_qc_message=user_qc_message,
            database_id=next(counter) if stored else None,
        )

    return _make


@pytest.fixture
def make_sst_list(store, make_sensor_value):
    """Factory fixture for an SST SensorValuesList over (time, value, flag) rows."""

    def _make(rows, settings=None) -> SensorValuesList:
        sensor_list = SensorValuesList(SST_COLUMN, store, settings)
        for row in rows:
            time, value = row[0], row[1]
            flag = row[2] if len(row) > 2 else Flag.ASSUMED_GOOD
            message = row[3] if len(row) > 3 else None
            sensor_list.add(make_sensor_value(time, value, user_qc_flag=flag, user_qc_message=message))
        return sensor_list

    return _make
