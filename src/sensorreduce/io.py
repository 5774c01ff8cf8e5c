"""Load and save raw sensor values as parquet tables.

Tables follow the sensor_values schema and are validated on both read and
write. Writes are atomic (temporary file, then rename).
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from sensorreduce.schemas.qc_flags import Flag
from sensorreduce.schemas.sensor_values import SENSOR_VALUE_FIELDS, validate_sensor_values
from sensorreduce.values.sensor_value import AutoQCResult, SensorValue, clear_dirty_flag


def _optional(value):
    return None if pd.isna(value) else value


def sensor_values_from_frame(df: pd.DataFrame) -> list[SensorValue]:
    """Convert a sensor_values table into SensorValue objects.

    Loaded values are treated as saved (not dirty).

    Raises:
        ValueError: If the table fails schema validation
    """
    validate_sensor_values(df)

    values = []
    for row in df[SENSOR_VALUE_FIELDS].itertuples(index=False):
        database_id = _optional(row.id)
        raw_value = _optional(row.value)
        values.append(
            SensorValue(
                dataset_id=int(row.dataset_id),
                column_id=int(row.column_id),
                time=pd.Timestamp(row.ts_utc).to_pydatetime(),
                value=None if raw_value is None else str(raw_value),
                auto_qc=AutoQCResult.from_json(_optional(row.auto_qc)),
                user_qc_flag=Flag.from_code(row.user_qc_flag),
                user_qc_message=_optional(row.user_qc_message),
                database_id=None if database_id is None else int(database_id),
                dirty=False,
            )
        )
    return values


def sensor_values_to_frame(values: Iterable[SensorValue]) -> pd.DataFrame:
    """Convert SensorValues to a sensor_values table sorted by key."""
    records = [v.to_record() for v in values]
    if not records:
        return pd.DataFrame(columns=SENSOR_VALUE_FIELDS)

    df = pd.DataFrame.from_records(records, columns=SENSOR_VALUE_FIELDS)
    df["ts_utc"] = pd.to_datetime(df["ts_utc"], utc=True)
    df["id"] = df["id"].astype("Int64")
    df = df.sort_values(["dataset_id", "column_id", "ts_utc"]).reset_index(drop=True)
    return df


def read_sensor_values(path: Path | str) -> list[SensorValue]:
    """Read SensorValues from a parquet file."""
    return sensor_values_from_frame(pd.read_parquet(Path(path)))


def write_sensor_values(values: Iterable[SensorValue], path: Path | str) -> Path:
    """Validate and write SensorValues to parquet, then mark them clean.

    Raises:
        ValueError: If any value is a derived copy that cannot be saved, or
            the table fails schema validation
    """
    values = list(values)
    unsaveable = [v for v in values if not v.can_be_saved]
    if unsaveable:
        raise ValueError(f"{len(unsaveable)} values cannot be saved, e.g. {unsaveable[0]}")

    df = sensor_values_to_frame(values)
    validate_sensor_values(df)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".parquet.tmp")
    df.to_parquet(tmp_path, index=False)
    tmp_path.rename(path)

    clear_dirty_flag(values)
    return path
