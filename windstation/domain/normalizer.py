"""Turn loosely typed upstream rows into :class:`Reading` objects.

The upstream feed is known to contain malformed sentinel rows, so every helper
here returns ``None`` for input it cannot use instead of raising.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, Mapping

from windstation.domain.entities import Reading

SOURCE_TS_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        parsed = int(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = int(raw)
        except ValueError:
            return None
    else:
        return None
    return parsed if parsed > 0 else None


def _parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = float(raw)
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_source_ts(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    try:
        return datetime.strptime(raw, SOURCE_TS_FORMAT)
    except ValueError:
        return None


def normalize_reading(raw: Any) -> Reading | None:
    if not isinstance(raw, Mapping):
        return None
    source_id = _parse_positive_int(raw.get("id"))
    station_id = _parse_positive_int(raw.get("estacion"))
    if source_id is None or station_id is None:
        return None
    measured_at = parse_source_ts(raw.get("tiempo"))
    if measured_at is None:
        return None

    speed = _parse_float(raw.get("velocidad"))
    if speed is not None and speed < 0:
        speed = None
    return Reading(
        source_id=source_id,
        station_id=station_id,
        speed_kmh=speed,
        direction_deg=_parse_float(raw.get("direccion")),
        measured_at=measured_at,
    )


def normalize_batch(rows: Iterable[Any]) -> list[Reading]:
    readings: list[Reading] = []
    for raw in rows:
        reading = normalize_reading(raw)
        if reading is not None:
            readings.append(reading)
    return readings


def normalize_latest_by_station(raw: Any) -> dict[int, Mapping[str, Any]]:
    # The source keys this map by station id, as strings or as numbers.
    if not isinstance(raw, Mapping):
        return {}
    rows: dict[int, Mapping[str, Any]] = {}
    for key, value in raw.items():
        station_id = _parse_positive_int(key)
        if station_id is None or not isinstance(value, Mapping):
            continue
        rows[station_id] = value
    return rows
