"""Sensor values and the lists that resolve them."""

from sensorreduce.values.calculators import MeanCalculator
from sensorreduce.values.sensor_value import AutoQCResult, RoutineFlag, SensorValue
from sensorreduce.values.list_value import SensorValuesListValue
from sensorreduce.values.sensor_values_list import (
    CacheState,
    MeasurementMode,
    SensorValuesList,
)
from sensorreduce.values.registry import SensorListRegistry

__all__ = [
    "MeanCalculator",
    "AutoQCResult",
    "RoutineFlag",
    "SensorValue",
    "SensorValuesListValue",
    "SensorValuesList",
    "MeasurementMode",
    "CacheState",
    "SensorListRegistry",
]
