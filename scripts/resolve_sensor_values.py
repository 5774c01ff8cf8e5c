"""Resolve raw sensor values into output values, one table per sensor list.

Flow:
    read raw parquet -> build store -> SensorValuesLists per sensor type
    -> write output values parquet per list

A sensor type with columns sharing timestamps gets one list per column; its
files are named <type>_<column ids>.parquet instead of <type>.parquet.

Sensor types file (JSON), keyed by column ID:
    {"1": {"id": 10, "name": "SST", "units": "degC"}, "2": {...}}
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from sensorreduce.config import ListSettings, output_values_dir
from sensorreduce.io import read_sensor_values
from sensorreduce.reduce import print_list_summary, write_output_values
from sensorreduce.store import DatasetSensorValues, SensorType
from sensorreduce.values.registry import SensorListRegistry
from sensorreduce.values.sensor_values_list import SensorValuesList


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve raw sensor values into output values.")
    parser.add_argument("--input", required=True, help="Raw sensor values parquet file")
    parser.add_argument(
        "--sensor-types",
        required=True,
        help="JSON file mapping column ID to sensor type",
    )
    parser.add_argument("--dataset-id", type=int, required=True, help="Dataset to resolve")
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Output directory (default: data/clean/output_values/<dataset-id>)",
    )
    parser.add_argument("--settings", default=None, help="Optional ListSettings JSON file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def load_sensor_types(path: Path) -> dict[int, SensorType]:
    raw = json.loads(path.read_text())
    return {int(column_id): SensorType(**spec) for column_id, spec in raw.items()}


def output_name(registry: SensorListRegistry, sensor_list: SensorValuesList) -> str:
    name = sensor_list.sensor_type.name
    if len(registry.lists_for_sensor_type(sensor_list.sensor_type.id)) > 1:
        name += "_" + "_".join(str(c) for c in sorted(sensor_list.column_ids))
    return f"{name}.parquet"


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = ListSettings.load(args.settings) if args.settings else ListSettings()
    sensor_types = load_sensor_types(Path(args.sensor_types))
    out_dir = Path(args.output_dir) if args.output_dir else output_values_dir(args.dataset_id)

    print(f"[resolve] Reading {args.input}")
    values = [v for v in read_sensor_values(args.input) if v.dataset_id == args.dataset_id]
    store = DatasetSensorValues(args.dataset_id, sensor_types)
    store.add_all(values)
    print(f"[resolve] Loaded {len(store)} values in {len(store.column_ids)} columns")

    registry = SensorListRegistry.from_store(store, settings)
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for sensor_list in registry:
        print()
        print_list_summary(sensor_list)
        if sensor_list.is_empty():
            continue

        out_path = out_dir / output_name(registry, sensor_list)
        written.append(write_output_values(sensor_list.get_values(), out_path))

    print(f"\n[resolve] Wrote {len(written)} output files to {out_dir}")


if __name__ == "__main__":
    main()
