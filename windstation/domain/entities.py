from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Station:
    station_id: int
    name: str


@dataclass
class Reading:
    source_id: int
    station_id: int
    speed_kmh: Optional[float]
    direction_deg: Optional[float]
    measured_at: datetime
    inserted_at: Optional[datetime] = None


@dataclass
class LatestReading:
    source_id: int
    station_id: int
    station_name: Optional[str]
    speed_kmh: Optional[float]
    direction_deg: Optional[float]
    measured_at: datetime
    inserted_at: datetime
    age_seconds: int
    is_stale: bool


@dataclass
class SpeedStats:
    count: int
    avg_speed_kmh: Optional[float]
    min_speed_kmh: Optional[float]
    max_speed_kmh: Optional[float]
    avg_direction_deg: Optional[float]


@dataclass
class Bucket:
    ts: datetime
    avg_speed_kmh: Optional[float]
    min_speed_kmh: Optional[float]
    max_speed_kmh: Optional[float]
    avg_direction_deg: Optional[float]
    sample_count: int


@dataclass
class WindowStats:
    count: int
    avg_speed_kmh: Optional[float]
    min_speed_kmh: Optional[float]
    max_speed_kmh: Optional[float]
    avg_direction_deg: Optional[float]
    start: datetime
    end: datetime


@dataclass
class RoseSector:
    label: str
    start_deg: float
    end_deg: float
    center_deg: float
    count: int
    avg_speed_kmh: Optional[float]


@dataclass
class HistoryResult:
    station_id: int
    range: str
    bucket_minutes: Optional[int]
    start: datetime
    end: datetime
    items: list[Reading] | list[Bucket]


@dataclass
class StatsResult:
    station_id: int
    latest_ts: datetime
    stats: dict[str, WindowStats]


@dataclass
class WindRoseResult:
    station_id: int
    range: str
    bins: int
    start: datetime
    end: datetime
    items: list[RoseSector]
