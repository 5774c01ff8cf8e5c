"""Tests for list settings."""

from __future__ import annotations

import pytest

from sensorreduce.config import (
    CONTINUOUS_MEASUREMENT_LIMIT,
    MAX_PERIODIC_GROUP_SIZE,
    ListSettings,
    output_values_dir,
    raw_sensor_values_path,
)


class TestListSettings:
    """Tests for ListSettings validation and serialization."""

    def test_defaults(self) -> None:
        settings = ListSettings()
        assert settings.continuity_limit_seconds == CONTINUOUS_MEASUREMENT_LIMIT == 300
        assert settings.max_periodic_group_size == MAX_PERIODIC_GROUP_SIZE == 25

    def test_invalid_values_collected(self) -> None:
        with pytest.raises(ValueError) as exc_info:
            ListSettings(continuity_limit_seconds=0, max_periodic_group_size=-1)
        message = str(exc_info.value)
        assert "continuity_limit_seconds" in message
        assert "max_periodic_group_size" in message

    def test_json_round_trip(self) -> None:
        settings = ListSettings(continuity_limit_seconds=600, max_periodic_group_size=10)
        assert ListSettings.from_json(settings.to_json()) == settings

    def test_save_and_load(self, tmp_path) -> None:
        settings = ListSettings(continuity_limit_seconds=120)
        path = settings.save(tmp_path / "config" / "settings.json")
        assert ListSettings.load(path) == settings

    def test_unknown_key_raises(self) -> None:
        with pytest.raises(TypeError):
            ListSettings.from_dict({"continuity_limit": 10})


class TestPaths:
    """Tests for data path helpers."""

    def test_paths(self) -> None:
        assert raw_sensor_values_path(7).name == "7.parquet"
        assert output_values_dir(7).name == "7"
        assert output_values_dir(7).parent.name == "output_values"
