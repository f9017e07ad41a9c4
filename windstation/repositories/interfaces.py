from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Sequence

from windstation.domain.entities import Reading, Station

MAX_RANGE_ROWS = 200_000


class StationRepository(ABC):
    @abstractmethod
    async def list(self) -> Sequence[Station]:
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, station_id: int, name: str) -> Station:
        raise NotImplementedError

    @abstractmethod
    async def ensure(self, station_id: int, default_name: str) -> bool:
        raise NotImplementedError


class ReadingRepository(ABC):
    @abstractmethod
    async def insert(self, reading: Reading) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def insert_batch(self, readings: Iterable[Reading]) -> int:
        raise NotImplementedError

    @abstractmethod
    async def latest_per_station(self, station_id: int | None) -> Sequence[tuple[Reading, str | None]]:
        raise NotImplementedError

    @abstractmethod
    async def latest_measured_at(self, station_id: int) -> datetime | None:
        raise NotImplementedError

    @abstractmethod
    async def range(self, station_id: int, start: datetime, end: datetime, limit: int) -> Sequence[Reading]:
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        raise NotImplementedError
