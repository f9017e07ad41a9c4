from __future__ import annotations

from typing import Any, Iterable, Mapping

from windstation.domain.normalizer import normalize_batch
from windstation.repositories.interfaces import ReadingRepository, StationRepository


class IngestService:
    """Writes one batch of upstream rows inside the caller's transaction."""

    def __init__(self, stations: StationRepository, readings: ReadingRepository) -> None:
        self._stations = stations
        self._readings = readings

    async def ingest(self, rows: Iterable[Mapping[str, Any]]) -> int:
        readings = normalize_batch(rows)
        if not readings:
            return 0
        for station_id in sorted({reading.station_id for reading in readings}):
            await self._stations.ensure(station_id, f"Station {station_id}")
        return await self._readings.insert_batch(readings)
