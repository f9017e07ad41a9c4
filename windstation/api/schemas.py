from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StationOut(BaseModel):
    station_id: int
    name: str


class StationsResponse(BaseModel):
    stations: list[StationOut]


class ReadingOut(BaseModel):
    source_id: int
    station_id: int
    speed_kmh: Optional[float] = None
    direction_deg: Optional[float] = None
    measured_at: datetime


class LatestReadingOut(ReadingOut):
    station_name: Optional[str] = None
    inserted_at: datetime
    age_seconds: int
    is_stale: bool


class LatestResponse(BaseModel):
    items: list[LatestReadingOut]


class BucketOut(BaseModel):
    ts: datetime
    avg_speed_kmh: Optional[float] = None
    min_speed_kmh: Optional[float] = None
    max_speed_kmh: Optional[float] = None
    avg_direction_deg: Optional[float] = None
    sample_count: int


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    station_id: int
    range: str
    bucket_minutes: Optional[int] = None
    start: datetime = Field(alias="from")
    end: datetime = Field(alias="to")
    items: Union[list[BucketOut], list[ReadingOut]]


class WindowStatsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int
    avg_speed_kmh: Optional[float] = None
    min_speed_kmh: Optional[float] = None
    max_speed_kmh: Optional[float] = None
    avg_direction_deg: Optional[float] = None
    start: datetime = Field(alias="from")
    end: datetime = Field(alias="to")


class StatsResponse(BaseModel):
    station_id: int
    latest_ts: datetime
    stats: dict[str, WindowStatsOut]


class RoseSectorOut(BaseModel):
    label: str
    start_deg: float
    end_deg: float
    center_deg: float
    count: int
    avg_speed_kmh: Optional[float] = None


class WindRoseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    station_id: int
    range: str
    bins: int
    start: datetime = Field(alias="from")
    end: datetime = Field(alias="to")
    items: list[RoseSectorOut]


class CollectorOut(BaseModel):
    started_at: datetime
    running: bool
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    total_runs: int
    total_inserted_rows: int
    total_errors: int
    last_error: Optional[str] = None
    backfill_inserted_rows: int
    backfill_completed_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    status: str
    rows: int
    collector: CollectorOut


class ServiceInfoResponse(BaseModel):
    service: str
    status: str
    stations: list[int]
