"""Pure statistics over readings already selected by time range.

Nothing here touches storage. Directions are treated as angles: averages use
vector summation so that 350 and 10 degrees average to 0, not 180.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from windstation.domain.entities import Bucket, Reading, RoseSector, SpeedStats
from windstation.domain.errors import InvalidQueryError

MIN_ROSE_BINS = 4
MAX_ROSE_BINS = 36
RESULTANT_EPSILON = 1e-8

COMPASS_16 = (
    "N",
    "NNE",
    "NE",
    "ENE",
    "E",
    "ESE",
    "SE",
    "SSE",
    "S",
    "SSW",
    "SW",
    "WSW",
    "W",
    "WNW",
    "NW",
    "NNW",
)

_DURATION_RE = re.compile(r"^(\d+)([mhd])$")
_DURATION_UNITS = {"m": "minutes", "h": "hours", "d": "days"}
_EPOCH = datetime(1970, 1, 1)


def parse_duration(token: str) -> timedelta:
    value = str(token or "").strip().lower()
    match = _DURATION_RE.match(value)
    if not match:
        raise InvalidQueryError(f"invalid duration: {token!r}")
    amount = int(match.group(1))
    return timedelta(**{_DURATION_UNITS[match.group(2)]: amount})


def resolve_window(latest: datetime, token: str) -> tuple[datetime, datetime]:
    """Window of length ``token`` ending at the station's latest reading."""
    return latest - parse_duration(token), latest


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_ms(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def normalize_direction(value: float) -> float:
    return ((value % 360) + 360) % 360


def circular_mean(directions: Iterable[Optional[float]]) -> Optional[float]:
    x = 0.0
    y = 0.0
    for deg in directions:
        if not _is_number(deg):
            continue
        rad = math.radians(deg)
        x += math.cos(rad)
        y += math.sin(rad)
    if math.hypot(x, y) < RESULTANT_EPSILON:
        return None
    mean = normalize_direction(math.degrees(math.atan2(y, x)))
    # atan2 can land a hair under 360 after normalization
    return 0.0 if mean >= 360 else mean


def compute_stats(readings: Sequence[Reading]) -> SpeedStats:
    speeds = [row.speed_kmh for row in readings if _is_number(row.speed_kmh)]
    return SpeedStats(
        count=len(readings),
        avg_speed_kmh=sum(speeds) / len(speeds) if speeds else None,
        min_speed_kmh=min(speeds) if speeds else None,
        max_speed_kmh=max(speeds) if speeds else None,
        avg_direction_deg=circular_mean(row.direction_deg for row in readings),
    )


def bucket_start(measured_at: datetime, bucket_ms: int) -> int:
    return (to_epoch_ms(measured_at) // bucket_ms) * bucket_ms


def aggregate_buckets(readings: Iterable[Reading], bucket_minutes: int) -> list[Bucket]:
    bucket_ms = bucket_minutes * 60 * 1000
    grouped: dict[int, list[Reading]] = {}
    for row in readings:
        grouped.setdefault(bucket_start(row.measured_at, bucket_ms), []).append(row)

    buckets: list[Bucket] = []
    for start in sorted(grouped):
        rows = grouped[start]
        stats = compute_stats(rows)
        buckets.append(
            Bucket(
                ts=from_epoch_ms(start),
                avg_speed_kmh=stats.avg_speed_kmh,
                min_speed_kmh=stats.min_speed_kmh,
                max_speed_kmh=stats.max_speed_kmh,
                avg_direction_deg=stats.avg_direction_deg,
                sample_count=len(rows),
            )
        )
    return buckets


def clamp_bins(bins: int) -> int:
    return min(MAX_ROSE_BINS, max(MIN_ROSE_BINS, int(bins)))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sector_label(index: int, bins: int, width: float) -> str:
    if bins == len(COMPASS_16):
        return COMPASS_16[index]
    start = index * width
    return f"{_round_half_up(start)}°-{_round_half_up(start + width)}°"


def sector_index(direction: float, bins: int) -> int:
    width = 360 / bins
    return int(math.floor(normalize_direction(direction) / width)) % bins


def wind_rose(readings: Iterable[Reading], bins: int = 16) -> list[RoseSector]:
    bin_count = clamp_bins(bins)
    width = 360 / bin_count
    counts = [0] * bin_count
    speed_sums = [0.0] * bin_count

    for row in readings:
        if not _is_number(row.direction_deg):
            continue
        idx = sector_index(row.direction_deg, bin_count)
        counts[idx] += 1
        if _is_number(row.speed_kmh):
            speed_sums[idx] += row.speed_kmh

    sectors: list[RoseSector] = []
    # the sector average divides by every reading in the sector, with or without a speed
    for idx in range(bin_count):
        start = idx * width
        sectors.append(
            RoseSector(
                label=sector_label(idx, bin_count, width),
                start_deg=start,
                end_deg=start + width,
                center_deg=start + width / 2,
                count=counts[idx],
                avg_speed_kmh=speed_sums[idx] / counts[idx] if counts[idx] else None,
            )
        )
    return sectors
