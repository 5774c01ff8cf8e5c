"""Configuration settings for sensor value resolution."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

# Maximum gap between two readings that still counts as continuous.
# Also the limit for interpolating in time.
CONTINUOUS_MEASUREMENT_LIMIT = 300

# Threshold group size between PERIODIC and CONTINUOUS measurements
MAX_PERIODIC_GROUP_SIZE = 25


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def data_root() -> Path:
    return project_root() / "data"


def raw_sensor_values_path(dataset_id: int) -> Path:
    return data_root() / "raw" / "sensor_values" / f"{dataset_id}.parquet"


def output_values_dir(dataset_id: int) -> Path:
    return data_root() / "clean" / "output_values" / str(dataset_id)


@dataclass
class ListSettings:
    """Tuning parameters for SensorValuesList.

    Attributes:
        continuity_limit_seconds: Largest gap (seconds) between two readings
            that keeps them in the same run. Also bounds interpolation.
        max_periodic_group_size: Runs at or below this size indicate
            PERIODIC sampling.
    """

    continuity_limit_seconds: float = CONTINUOUS_MEASUREMENT_LIMIT
    max_periodic_group_size: int = MAX_PERIODIC_GROUP_SIZE

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        errors = []

        if self.continuity_limit_seconds <= 0:
            errors.append(
                f"continuity_limit_seconds must be positive, got {self.continuity_limit_seconds}"
            )

        if self.max_periodic_group_size <= 0:
            errors.append(
                f"max_periodic_group_size must be positive, got {self.max_periodic_group_size}"
            )

        if errors:
            raise ValueError("ListSettings validation failed:\n  - " + "\n  - ".join(errors))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Path | str) -> Path:
        """Save settings to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        return path

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ListSettings:
        return cls(**d)

    @classmethod
    def from_json(cls, json_str: str) -> ListSettings:
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Path | str) -> ListSettings:
        """Load settings from a JSON file."""
        path = Path(path)
        return cls.from_json(path.read_text())
