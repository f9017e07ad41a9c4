from __future__ import annotations

import logging

from windstation.core.config import Settings
from windstation.domain.entities import Station
from windstation.repositories.interfaces import StationRepository

logger = logging.getLogger(__name__)


class StationService:
    def __init__(self, stations: StationRepository, settings: Settings) -> None:
        self._stations = stations
        self._settings = settings

    async def list(self) -> list[Station]:
        return list(await self._stations.list())

    async def update(self, station_id: int, name: str) -> Station:
        return await self._stations.upsert(station_id=station_id, name=name.strip())

    async def sync_configured(self) -> int:
        names = self._settings.station_name_map
        for station_id, name in names.items():
            await self.update(station_id, name)
        logger.info("stations synced count=%s ids=%s", len(names), sorted(names))
        return len(names)
