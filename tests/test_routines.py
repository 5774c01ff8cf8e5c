"""Tests for automatic QC routines."""

from __future__ import annotations

import pytest

from conftest import at
from sensorreduce.exceptions import RoutineError
from sensorreduce.qc.routines import RangeCheckRoutine, SpikeCheckRoutine, run_routines
from sensorreduce.schemas.qc_flags import Flag


class TestRangeCheckRoutine:
    """Tests for the physical range check."""

    def test_flags_out_of_range(self, make_sensor_value) -> None:
        values = [make_sensor_value(at(0), "10.0"), make_sensor_value(at(60), "45.0")]
        RangeCheckRoutine(min_value=-2, max_value=35).qc_values(values)

        assert len(values[0].auto_qc) == 0
        assert values[1].auto_qc_flag is Flag.BAD
        assert values[1].user_qc_flag is Flag.NEEDED
        flag = list(values[1].auto_qc)[0]
        assert flag.routine_name == "RangeCheckRoutine"
        assert flag.actual_value == "45.0"

    def test_bounds_inclusive(self, make_sensor_value) -> None:
        values = [make_sensor_value(at(0), "35.0")]
        RangeCheckRoutine(min_value=-2, max_value=35).qc_values(values)
        assert len(values[0].auto_qc) == 0

    def test_missing_values_skipped(self, make_sensor_value) -> None:
        values = [make_sensor_value(at(0), None)]
        RangeCheckRoutine(min_value=-2, max_value=35).qc_values(values)
        assert len(values[0].auto_qc) == 0

    def test_questionable_flag(self, make_sensor_value) -> None:
        values = [make_sensor_value(at(0), "99.0")]
        RangeCheckRoutine(min_value=0, max_value=1, flag=Flag.QUESTIONABLE).qc_values(values)
        assert values[0].auto_qc_flag is Flag.QUESTIONABLE

    @pytest.mark.parametrize(
        "params,match",
        [
            ({"max_value": 1}, "missing parameter min_value"),
            ({"min_value": "x", "max_value": 1}, "invalid parameter"),
            ({"min_value": 5, "max_value": 1}, "must be <"),
            ({"min_value": 0, "max_value": 1, "flag": Flag.GOOD}, "QUESTIONABLE or BAD"),
        ],
    )
    def test_invalid_parameters(self, params, match) -> None:
        with pytest.raises(RoutineError, match=match):
            RangeCheckRoutine(**params)

    def test_unstored_value_raises(self, make_sensor_value) -> None:
        values = [make_sensor_value(at(0), "99.0", stored=False)]
        with pytest.raises(RoutineError, match="not stored"):
            RangeCheckRoutine(min_value=0, max_value=1).qc_values(values)


class TestSpikeCheckRoutine:
    """Tests for the spike check."""

    def test_flags_jump(self, make_sensor_value) -> None:
        values = [
            make_sensor_value(at(0), "10.0"),
            make_sensor_value(at(60), "10.5"),
            make_sensor_value(at(120), "20.0"),
        ]
        SpikeCheckRoutine(max_delta=2.0).qc_values(values)

        assert len(values[0].auto_qc) == 0
        assert len(values[1].auto_qc) == 0
        assert values[2].auto_qc.all_messages() == "Spike detected"

    def test_compares_with_previous_present_value(self, make_sensor_value) -> None:
        values = [
            make_sensor_value(at(0), "10.0"),
            make_sensor_value(at(60), None),
            make_sensor_value(at(120), "11.0"),
        ]
        SpikeCheckRoutine(max_delta=2.0).qc_values(values)
        assert len(values[2].auto_qc) == 0

    def test_max_delta_must_be_positive(self) -> None:
        with pytest.raises(RoutineError, match="positive"):
            SpikeCheckRoutine(max_delta=0)


class TestRunRoutines:
    """Tests for running several routines."""

    def test_sorted_and_accumulated(self, make_sensor_value) -> None:
        values = [
            make_sensor_value(at(120), "50.0"),
            make_sensor_value(at(0), "10.0"),
            make_sensor_value(at(60), "11.0"),
        ]
        routines = [
            RangeCheckRoutine(min_value=-2, max_value=35),
            SpikeCheckRoutine(max_delta=5.0, flag=Flag.QUESTIONABLE),
        ]
        result = run_routines(values, routines)

        assert [v.time for v in result] == [at(0), at(60), at(120)]
        assert result[2].auto_qc.all_messages() == "Out of range;Spike detected"
        assert result[2].auto_qc_flag is Flag.BAD
        assert result[2].user_qc_message == "Out of range;Spike detected"
