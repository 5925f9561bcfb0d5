"""Readers for session exports and area capacity tables."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from .errors import InvalidArea
from .models import RawRecord
from .registry import Area, AreaRegistry, split_label

SESSION_COLUMNS = ("area", "start", "duration_minutes")


def read_session_csv(path: Path) -> list[RawRecord]:
    """Read ``area,start,duration_minutes`` rows without validating them."""
    with open(path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        missing = [column for column in SESSION_COLUMNS if column not in (reader.fieldnames or ())]
        if missing:
            raise ValueError(f"{path} is missing columns: {', '.join(missing)}")
        return [
            RawRecord(
                area=row["area"],
                start=row["start"],
                duration_minutes=row["duration_minutes"],
            )
            for row in reader
        ]


def read_area_csv(path: Path) -> AreaRegistry:
    """Read ``area,capacity`` rows, with optional ``building`` and ``floor``."""
    with open(path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        return AreaRegistry(_area_from_row(row) for row in reader)


def read_area_json(path: Path) -> AreaRegistry:
    """Read either ``{"area": capacity}`` or a list of area objects."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return AreaRegistry.from_capacities(
            {label: _parse_capacity(label, value) for label, value in data.items()}
        )
    if isinstance(data, list):
        return AreaRegistry(_area_from_row(row) for row in data)
    raise InvalidArea(f"{path} must hold an object or a list of areas")


def read_areas(path: Path) -> AreaRegistry:
    if Path(path).suffix.lower() == ".json":
        return read_area_json(path)
    return read_area_csv(path)


def _area_from_row(row: Any) -> Area:
    if not isinstance(row, dict):
        raise InvalidArea(f"Area entry must be an object, got {type(row).__name__}")
    label = str(row.get("area") or "").strip()
    if not label:
        raise InvalidArea("Area row without a label")
    default_building, default_floor = split_label(label)
    building = str(row.get("building") or "").strip() or default_building
    floor_value = row.get("floor")
    floor = str(floor_value).strip() if floor_value not in (None, "") else default_floor
    return Area(
        label=label,
        building=building,
        floor=floor,
        capacity=_parse_capacity(label, row.get("capacity")),
    )


def _parse_capacity(label: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise InvalidArea(f"Capacity of {label!r} is not an integer: {value!r}") from exc
