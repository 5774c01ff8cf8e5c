"""Automatic QC routines."""

from sensorreduce.qc.routines import (
    RangeCheckRoutine,
    Routine,
    SpikeCheckRoutine,
    run_routines,
)

__all__ = ["Routine", "RangeCheckRoutine", "SpikeCheckRoutine", "run_routines"]
