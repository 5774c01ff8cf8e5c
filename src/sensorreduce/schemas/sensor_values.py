"""Canonical raw sensor value table.

This defines what a stored table of raw sensor values looks like. It is
what:
- the value store loads from
- the value store saves to
- the CLI reads

Non-negotiables:
- ts_utc is timezone-aware UTC
- value is the raw payload as a string (null for missing readings)
- user_qc_flag holds a Flag storage code
- at most one value per (dataset_id, column_id, ts_utc)
"""

from __future__ import annotations

from typing import TypedDict

import pandas as pd

from sensorreduce.schemas.qc_flags import FLAG_CODES
from sensorreduce.schemas.validate import (
    require_columns,
    require_isin,
    require_no_nulls,
    require_timezone_utc,
    require_unique,
)


class SensorValueRecord(TypedDict):
    """One row of the raw sensor value table."""

    id: int | None  # Storage ID (null for unsaved values)
    dataset_id: int
    column_id: int  # File column, or a special position column
    ts_utc: pd.Timestamp  # Timezone-aware UTC measurement time
    value: str | None  # Raw payload (null for missing)
    auto_qc: str  # JSON list of automatic QC flags
    user_qc_flag: int  # Flag storage code
    user_qc_message: str | None


SENSOR_VALUE_FIELDS = [
    "id",
    "dataset_id",
    "column_id",
    "ts_utc",
    "value",
    "auto_qc",
    "user_qc_flag",
    "user_qc_message",
]

KEY_COLUMNS = ["dataset_id", "column_id", "ts_utc"]

_TABLE_NAME = "sensor_values"


def validate_sensor_values(df: pd.DataFrame) -> None:
    """Validate that a DataFrame conforms to the sensor_values schema.

    Checks performed:
    - All required columns present
    - ts_utc is tz-aware UTC
    - No nulls in: dataset_id, column_id, ts_utc, user_qc_flag
    - user_qc_flag is a known flag code
    - Uniqueness on (dataset_id, column_id, ts_utc)

    Raises:
        ValueError: If any validation check fails
    """
    require_columns(df.columns, SENSOR_VALUE_FIELDS, table=_TABLE_NAME)

    if df.empty:
        return

    require_timezone_utc(df, "ts_utc", table=_TABLE_NAME)
    require_no_nulls(df, ["dataset_id", "column_id", "ts_utc", "user_qc_flag"], table=_TABLE_NAME)
    require_isin(df, "user_qc_flag", FLAG_CODES, table=_TABLE_NAME)
    require_unique(df, KEY_COLUMNS, table=_TABLE_NAME)
