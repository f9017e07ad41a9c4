from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

from windstation.core.clock import utcnow_naive
from windstation.core.config import Settings
from windstation.domain.aggregation import (
    aggregate_buckets,
    clamp_bins,
    compute_stats,
    parse_duration,
    resolve_window,
    wind_rose,
)
from windstation.domain.entities import (
    HistoryResult,
    LatestReading,
    StatsResult,
    WindowStats,
    WindRoseResult,
)
from windstation.domain.errors import InvalidQueryError, NotFoundError
from windstation.repositories.interfaces import MAX_RANGE_ROWS, ReadingRepository


def parse_windows(raw: str | Sequence[str]) -> list[str]:
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    tokens: list[str] = []
    for part in parts:
        token = part.strip()
        if token and token not in tokens:
            tokens.append(token)
    if not tokens:
        raise InvalidQueryError("windows must list at least one duration")
    return tokens


class ReadingService:
    """Read side: resolves windows against stored data and aggregates them."""

    def __init__(self, readings: ReadingRepository, settings: Settings) -> None:
        self._readings = readings
        self._settings = settings

    async def latest(self, station_id: int | None, now: datetime | None = None) -> list[LatestReading]:
        now = now or utcnow_naive()
        rows = await self._readings.latest_per_station(station_id)
        items: list[LatestReading] = []
        for reading, station_name in rows:
            # staleness is measured from when we stored the row, not when it was measured
            inserted_at = reading.inserted_at or now
            age_seconds = max(0, math.floor((now - inserted_at).total_seconds()))
            items.append(
                LatestReading(
                    source_id=reading.source_id,
                    station_id=reading.station_id,
                    station_name=station_name,
                    speed_kmh=reading.speed_kmh,
                    direction_deg=reading.direction_deg,
                    measured_at=reading.measured_at,
                    inserted_at=inserted_at,
                    age_seconds=age_seconds,
                    is_stale=age_seconds >= self._settings.stale_after_seconds,
                )
            )
        return items

    async def history(
        self,
        station_id: int,
        range_token: str,
        bucket_minutes: int | None,
        limit: int,
    ) -> HistoryResult:
        if bucket_minutes is not None and bucket_minutes <= 0:
            raise InvalidQueryError("bucket_minutes must be a positive integer")
        if limit <= 0 or limit > MAX_RANGE_ROWS:
            raise InvalidQueryError(f"limit must be between 1 and {MAX_RANGE_ROWS}")
        parse_duration(range_token)  # reject bad tokens before the store lookup
        start, end = resolve_window(await self._require_latest(station_id), range_token)
        rows = await self._readings.range(station_id, start, end, limit)
        items = aggregate_buckets(rows, bucket_minutes) if bucket_minutes else list(rows)
        return HistoryResult(
            station_id=station_id,
            range=range_token,
            bucket_minutes=bucket_minutes,
            start=start,
            end=end,
            items=items,
        )

    async def stats(self, station_id: int, windows: str | Sequence[str]) -> StatsResult:
        tokens = parse_windows(windows)
        durations = {token: parse_duration(token) for token in tokens}
        latest = await self._require_latest(station_id)
        output: dict[str, WindowStats] = {}
        for token, duration in durations.items():
            start = latest - duration
            rows = await self._readings.range(station_id, start, latest, MAX_RANGE_ROWS)
            stats = compute_stats(rows)
            output[token] = WindowStats(
                count=stats.count,
                avg_speed_kmh=stats.avg_speed_kmh,
                min_speed_kmh=stats.min_speed_kmh,
                max_speed_kmh=stats.max_speed_kmh,
                avg_direction_deg=stats.avg_direction_deg,
                start=start,
                end=latest,
            )
        return StatsResult(station_id=station_id, latest_ts=latest, stats=output)

    async def wind_rose(self, station_id: int, range_token: str, bins: int) -> WindRoseResult:
        bin_count = clamp_bins(bins)
        parse_duration(range_token)
        start, end = resolve_window(await self._require_latest(station_id), range_token)
        rows = await self._readings.range(station_id, start, end, MAX_RANGE_ROWS)
        return WindRoseResult(
            station_id=station_id,
            range=range_token,
            bins=bin_count,
            start=start,
            end=end,
            items=wind_rose(rows, bin_count),
        )

    async def count(self) -> int:
        return await self._readings.count()

    async def _require_latest(self, station_id: int) -> datetime:
        latest = await self._readings.latest_measured_at(station_id)
        if latest is None:
            raise NotFoundError(f"no readings for station {station_id}")
        return latest
