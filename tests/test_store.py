"""Tests for the in-memory dataset value store."""

from __future__ import annotations

import pytest

from conftest import DATASET_ID, SALINITY_COLUMN, SST, SST_COLUMN, SST_COLUMN_2, at
from sensorreduce.exceptions import RecordNotFoundError
from sensorreduce.io import sensor_values_to_frame
from sensorreduce.schemas.qc_flags import Flag
from sensorreduce.store import DatasetSensorValues, SensorValueStore
from sensorreduce.values.sensor_value import LONGITUDE_COLUMN_ID, RoutineFlag, SensorValue


class TestDatasetSensorValues:
    """Tests for adding and retrieving values."""

    def test_satisfies_protocol(self, store) -> None:
        assert isinstance(store, SensorValueStore)

    def test_add_and_get(self, store, make_sensor_value) -> None:
        sv = make_sensor_value(at(0))
        store.add(sv)
        assert store.get(SST_COLUMN, at(0)) is sv
        assert store.get(SST_COLUMN, at(1)) is None
        assert len(store) == 1

    def test_wrong_dataset_raises(self, store) -> None:
        sv = SensorValue(dataset_id=DATASET_ID + 1, column_id=SST_COLUMN, time=at(0), value="1")
        with pytest.raises(ValueError, match="dataset"):
            store.add(sv)

    def test_unknown_column_raises(self, store, make_sensor_value) -> None:
        with pytest.raises(RecordNotFoundError, match="column 99"):
            store.add(make_sensor_value(at(0), column_id=99))

    def test_duplicate_raises(self, store, make_sensor_value) -> None:
        store.add(make_sensor_value(at(0)))
        with pytest.raises(ValueError, match="already has a value"):
            store.add(make_sensor_value(at(0), "2.0"))

    def test_column_values_sorted(self, store, make_sensor_value) -> None:
        store.add_all([make_sensor_value(at(t)) for t in (20, 0, 10)])
        assert [v.time for v in store.column_values(SST_COLUMN)] == [at(0), at(10), at(20)]
        assert store.column_values(SALINITY_COLUMN) == []

    def test_sensor_type_lookup(self, store) -> None:
        assert store.get_sensor_type(SST_COLUMN) == SST
        assert store.columns_for_sensor_type(SST) == [SST_COLUMN, SST_COLUMN_2]
        assert [t.id for t in store.sensor_types] == sorted(t.id for t in store.sensor_types)


class TestQCMessage:
    """Tests for QC message resolution."""

    def test_needed_uses_auto_messages(self, store, make_sensor_value) -> None:
        sv = make_sensor_value(at(0))
        sv.add_auto_qc_flag(RoutineFlag("RangeCheckRoutine", Flag.BAD, "Out of range"))
        assert store.get_qc_message(sv) == "Out of range"

    def test_plain_user_message(self, store, make_sensor_value) -> None:
        sv = make_sensor_value(at(0), user_qc_flag=Flag.QUESTIONABLE, user_qc_message="Drift")
        assert store.get_qc_message(sv) == "Drift"

    def test_position_message_from_longitude(self, store, make_sensor_value) -> None:
        position = make_sensor_value(
            at(0),
            "-30.5",
            column_id=LONGITUDE_COLUMN_ID,
            user_qc_flag=Flag.BAD,
            user_qc_message="Position on land",
        )
        sst = make_sensor_value(at(0))
        sst.set_position_qc(Flag.BAD, "old message")
        store.add_all([position, sst])

        assert store.get_qc_message(sst) == "Position QC: Position on land"
        assert store.get_qc_message(sst, ignore_position=True) == ""

    def test_position_message_without_position_value(self, store, make_sensor_value) -> None:
        sst = make_sensor_value(at(0))
        sst.set_position_qc(Flag.BAD, "Position on land")
        assert store.get_qc_message(sst) == "Position QC: Position on land"


class TestFromFrame:
    """Tests for building a store from a table."""

    def test_from_frame(self, sensor_types, make_sensor_value) -> None:
        df = sensor_values_to_frame(
            [make_sensor_value(at(0), "1.0"), make_sensor_value(at(10), "2.0", column_id=SST_COLUMN_2)]
        )
        store = DatasetSensorValues.from_frame(df, sensor_types)

        assert store.dataset_id == DATASET_ID
        assert store.column_ids == [SST_COLUMN, SST_COLUMN_2]
        assert store.get(SST_COLUMN, at(0)).double_value == pytest.approx(1.0)

    def test_several_datasets_need_id(self, sensor_types, make_sensor_value) -> None:
        other = SensorValue(dataset_id=DATASET_ID + 1, column_id=SST_COLUMN, time=at(0), value="1")
        df = sensor_values_to_frame([make_sensor_value(at(0)), other])

        with pytest.raises(ValueError, match="several datasets"):
            DatasetSensorValues.from_frame(df, sensor_types)

        store = DatasetSensorValues.from_frame(df, sensor_types, dataset_id=DATASET_ID)
        assert len(store) == 1
