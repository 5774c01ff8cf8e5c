"""Tabular views of resolved sensor values.

Helpers for turning SensorValuesList lookups into DataFrames, writing them
to parquet, and printing a short summary of a list after it has been built.

Output tables keep one type per column: numeric values in `value` (float,
NaN for text) and text payloads in `text_value` (null for numbers), so
sensors mixing status codes and words still write to parquet.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from sensorreduce.schemas.qc_flags import Flag
from sensorreduce.values.list_value import SensorValuesListValue
from sensorreduce.values.sensor_values_list import SensorValuesList

OUTPUT_VALUE_FIELDS = [
    "time",
    "start_time",
    "end_time",
    "sensor_type",
    "value",
    "text_value",
    "qc_flag",
    "qc_message",
    "member_count",
    "interpolated",
]


def output_values_to_frame(values: Iterable[SensorValuesListValue]) -> pd.DataFrame:
    """One row per resolved value, in the given order."""
    records = [v.to_record() for v in values]
    if not records:
        return pd.DataFrame(columns=OUTPUT_VALUE_FIELDS)
    return _typed(pd.DataFrame.from_records(records, columns=OUTPUT_VALUE_FIELDS))


def _typed(df: pd.DataFrame) -> pd.DataFrame:
    df["value"] = df["value"].astype("float64")
    df["text_value"] = df["text_value"].astype("object")
    return df


def resolve_at_times(sensor_list: SensorValuesList, times: Iterable[datetime]) -> pd.DataFrame:
    """Resolve a list at each requested time.

    Times with no available value keep their row, with a NaN value and no
    flag, so coverage can be counted downstream.

    Args:
        sensor_list: List to query
        times: Requested times

    Returns:
        DataFrame with OUTPUT_VALUE_FIELDS, one row per requested time
    """
    rows = []
    for time in times:
        value = sensor_list.get_value(time)
        if value is None:
            rows.append(
                {
                    "time": time,
                    "start_time": None,
                    "end_time": None,
                    "sensor_type": sensor_list.sensor_type.name,
                    "value": np.nan,
                    "text_value": None,
                    "qc_flag": None,
                    "qc_message": "",
                    "member_count": 0,
                    "interpolated": False,
                }
            )
        else:
            rows.append(value.to_record())

    if not rows:
        return pd.DataFrame(columns=OUTPUT_VALUE_FIELDS)
    return _typed(pd.DataFrame.from_records(rows, columns=OUTPUT_VALUE_FIELDS))


def write_output_values(values: Iterable[SensorValuesListValue], path: Path | str) -> Path:
    """Write resolved values to parquet (temporary file, then rename)."""
    df = output_values_to_frame(values)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".parquet.tmp")
    df.to_parquet(tmp_path, index=False)
    tmp_path.rename(path)
    return path


def print_list_summary(sensor_list: SensorValuesList) -> None:
    """Print summary statistics for a list and its output values."""
    name = sensor_list.sensor_type.name
    print(f"[resolve] {name}: {sensor_list.raw_size()} raw values")

    if sensor_list.is_empty():
        print(f"[resolve] {name}: no values")
        return

    print(f"  Measurement mode: {sensor_list.get_measurement_mode().value}")
    values = sensor_list.get_values()
    print(f"  Output values: {len(values)}")

    flag_counts: dict[Flag, int] = {}
    for value in values:
        flag_counts[value.qc_flag] = flag_counts.get(value.qc_flag, 0) + 1
    for flag, count in sorted(flag_counts.items(), key=lambda item: item[0].significance):
        print(f"    {flag.label}: {count}")

    numeric = [v.double_value for v in values if v.is_numeric() and not v.is_nan()]
    if numeric:
        print(f"  Value range: {min(numeric):.3f} to {max(numeric):.3f}")
