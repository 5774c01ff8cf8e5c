"""Schema definitions for sensor value resolution.

This package defines the contract layer - what "valid data" looks like.
Nothing here should do work, only define structure.

Schemas:
- qc_flags: QC flag vocabulary and significance order
- sensor_values: Canonical raw sensor value table
- validate: Validation helpers
"""

from sensorreduce.schemas.qc_flags import FLAG_CODES, Flag, worst_of
from sensorreduce.schemas.sensor_values import (
    KEY_COLUMNS as SENSOR_VALUE_KEY_COLUMNS,
    SENSOR_VALUE_FIELDS,
    SensorValueRecord,
    validate_sensor_values,
)
from sensorreduce.schemas.validate import (
    require_columns,
    require_isin,
    require_no_nulls,
    require_timezone_utc,
    require_unique,
)

__all__ = [
    # QC Flags
    "Flag",
    "FLAG_CODES",
    "worst_of",
    # Sensor values
    "SensorValueRecord",
    "SENSOR_VALUE_FIELDS",
    "SENSOR_VALUE_KEY_COLUMNS",
    "validate_sensor_values",
    # Validation helpers
    "require_columns",
    "require_no_nulls",
    "require_unique",
    "require_timezone_utc",
    "require_isin",
]
