"""Tests for validation helper functions."""

from __future__ import annotations

import pandas as pd
import pytest

from sensorreduce.schemas.validate import (
    require_columns,
    require_isin,
    require_no_nulls,
    require_timezone_utc,
    require_unique,
)


class TestRequireColumns:
    """Tests for require_columns helper."""

    def test_all_columns_present_passes(self) -> None:
        """Should pass when all required columns are present."""
        columns = ["a", "b", "c", "d"]
        require_columns(columns, ["a", "b"])

    def test_missing_column_raises(self) -> None:
        """Should raise when required column is missing."""
        columns = ["a", "b"]
        with pytest.raises(ValueError, match="Missing columns"):
            require_columns(columns, ["a", "b", "c"])

    def test_table_name_in_error(self) -> None:
        """Table name should appear in error message."""
        columns = ["a"]
        with pytest.raises(ValueError, match="test_table"):
            require_columns(columns, ["a", "b"], table="test_table")


class TestRequireNoNulls:
    """Tests for require_no_nulls helper."""

    def test_no_nulls_passes(self) -> None:
        """Should pass when no nulls in specified columns."""
        df = pd.DataFrame({"a": [1, 2, 3], "b": ["x", "y", "z"]})
        require_no_nulls(df, ["a", "b"])

    def test_null_raises(self) -> None:
        """Should raise when null found."""
        df = pd.DataFrame({"a": [1, None, 3], "b": ["x", "y", "z"]})
        with pytest.raises(ValueError, match="Null values"):
            require_no_nulls(df, ["a"])

    def test_includes_count(self) -> None:
        """Error message should include count of nulls."""
        df = pd.DataFrame({"a": [None, None, 3]})
        with pytest.raises(ValueError, match="2 rows"):
            require_no_nulls(df, ["a"])


class TestRequireUnique:
    """Tests for require_unique helper."""

    def test_unique_passes(self) -> None:
        """Should pass when keys are unique."""
        df = pd.DataFrame({"a": [1, 2, 3], "b": ["x", "y", "z"]})
        require_unique(df, ["a", "b"])

    def test_duplicate_raises(self) -> None:
        """Should raise when duplicates found."""
        df = pd.DataFrame({"a": [1, 1, 3], "b": ["x", "x", "z"]})
        with pytest.raises(ValueError, match="Duplicate keys"):
            require_unique(df, ["a", "b"])

    def test_empty_df_passes(self) -> None:
        """Empty DataFrame should pass."""
        df = pd.DataFrame({"a": [], "b": []})
        require_unique(df, ["a", "b"])


class TestRequireTimezoneUtc:
    """Tests for require_timezone_utc helper."""

    def test_utc_passes(self) -> None:
        """Should pass for UTC timestamps."""
        df = pd.DataFrame(
            {"ts": pd.date_range("2024-01-01", periods=3, freq="h", tz="UTC")}
        )
        require_timezone_utc(df, "ts")

    def test_non_utc_raises(self) -> None:
        """Should raise for non-UTC timezone."""
        df = pd.DataFrame(
            {"ts": pd.date_range("2024-01-01", periods=3, freq="h", tz="America/New_York")}
        )
        with pytest.raises(ValueError, match="(Wrong timezone|UTC)"):
            require_timezone_utc(df, "ts")

    def test_naive_raises(self) -> None:
        """Should raise for timezone-naive timestamps."""
        df = pd.DataFrame(
            {"ts": pd.date_range("2024-01-01", periods=3, freq="h")}
        )
        with pytest.raises(ValueError, match="Timezone required"):
            require_timezone_utc(df, "ts")

    def test_empty_df_passes(self) -> None:
        """Empty DataFrame should pass."""
        df = pd.DataFrame({"ts": pd.DatetimeIndex([], tz="UTC")})
        require_timezone_utc(df, "ts")


class TestRequireIsin:
    """Tests for require_isin helper."""

    def test_allowed_values_pass(self) -> None:
        """Should pass when every value is allowed."""
        df = pd.DataFrame({"flag": [2, 3, 4]})
        require_isin(df, "flag", [2, 3, 4, 9])

    def test_unknown_value_raises(self) -> None:
        """Should raise and count values outside the allowed set."""
        df = pd.DataFrame({"flag": [2, 7, 8]})
        with pytest.raises(ValueError, match="Unknown values.*2 rows"):
            require_isin(df, "flag", [2, 3, 4])

    def test_nulls_ignored(self) -> None:
        """Nulls are left to require_no_nulls."""
        df = pd.DataFrame({"flag": [2, None]})
        require_isin(df, "flag", [2])

    def test_accepts_generator(self) -> None:
        """Allowed values may be any iterable."""
        df = pd.DataFrame({"flag": [2, 5]})
        with pytest.raises(ValueError, match=r"\[2, 3\]"):
            require_isin(df, "flag", (x for x in (3, 2)))
