from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from windstation.core.clock import utcnow_naive
from windstation.db.models import ReadingModel, StationModel
from windstation.domain.entities import Reading, Station
from windstation.repositories.interfaces import MAX_RANGE_ROWS, ReadingRepository, StationRepository

logger = logging.getLogger(__name__)


def dialect_insert(session: AsyncSession):
    bind = session.bind
    name = getattr(getattr(bind, "dialect", None), "name", "sqlite")
    return pg_insert if name == "postgresql" else sqlite_insert


def to_station(model: StationModel) -> Station:
    return Station(station_id=model.station_id, name=model.name)


def to_reading(model: ReadingModel) -> Reading:
    return Reading(
        source_id=model.source_id,
        station_id=model.station_id,
        speed_kmh=model.speed_kmh,
        direction_deg=model.direction_deg,
        measured_at=model.measured_at,
        inserted_at=model.inserted_at,
    )


class SqlStationRepository(StationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(self) -> Sequence[Station]:
        result = await self._session.execute(select(StationModel).order_by(StationModel.station_id))
        return [to_station(row) for row in result.scalars().all()]

    async def upsert(self, station_id: int, name: str) -> Station:
        insert = dialect_insert(self._session)
        stmt = insert(StationModel).values(station_id=station_id, name=name)
        stmt = stmt.on_conflict_do_update(index_elements=["station_id"], set_={"name": stmt.excluded.name})
        await self._session.execute(stmt)
        return Station(station_id=station_id, name=name)

    async def ensure(self, station_id: int, default_name: str) -> bool:
        insert = dialect_insert(self._session)
        stmt = (
            insert(StationModel)
            .values(station_id=station_id, name=default_name)
            .on_conflict_do_nothing(index_elements=["station_id"])
        )
        result = await self._session.execute(stmt)
        return bool(result.rowcount)


class SqlReadingRepository(ReadingRepository):
    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow_naive) -> None:
        self._session = session
        self._clock = clock

    async def insert(self, reading: Reading) -> bool:
        insert = dialect_insert(self._session)
        stmt = (
            insert(ReadingModel)
            .values(
                source_id=reading.source_id,
                station_id=reading.station_id,
                speed_kmh=reading.speed_kmh,
                direction_deg=reading.direction_deg,
                measured_at=reading.measured_at,
                inserted_at=self._clock(),
            )
            .on_conflict_do_nothing(index_elements=["source_id"])
        )
        result = await self._session.execute(stmt)
        return bool(result.rowcount)

    async def insert_batch(self, readings: Iterable[Reading]) -> int:
        inserted = 0
        for reading in readings:
            if not isinstance(reading, Reading):
                logger.warning("skipping non-reading item in batch type=%s", type(reading).__name__)
                continue
            if await self.insert(reading):
                inserted += 1
        return inserted

    async def latest_per_station(self, station_id: int | None) -> Sequence[tuple[Reading, str | None]]:
        # source_id is issued monotonically upstream, so it decides recency
        latest = select(func.max(ReadingModel.source_id).label("max_source_id")).group_by(ReadingModel.station_id)
        if station_id is not None:
            latest = latest.where(ReadingModel.station_id == station_id)
        latest = latest.subquery()
        query = (
            select(ReadingModel, StationModel.name)
            .join(latest, ReadingModel.source_id == latest.c.max_source_id)
            .outerjoin(StationModel, StationModel.station_id == ReadingModel.station_id)
            .order_by(ReadingModel.station_id.asc())
        )
        result = await self._session.execute(query)
        return [(to_reading(model), name) for model, name in result.all()]

    async def latest_measured_at(self, station_id: int) -> datetime | None:
        query = select(func.max(ReadingModel.measured_at)).where(ReadingModel.station_id == station_id)
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def range(self, station_id: int, start: datetime, end: datetime, limit: int) -> Sequence[Reading]:
        limit = max(1, min(limit, MAX_RANGE_ROWS))
        query = (
            select(ReadingModel)
            .where(ReadingModel.station_id == station_id)
            .where(ReadingModel.measured_at >= start)
            .where(ReadingModel.measured_at <= end)
            .order_by(ReadingModel.measured_at.asc(), ReadingModel.source_id.asc())
            .limit(limit)
        )
        result = await self._session.execute(query)
        return [to_reading(row) for row in result.scalars().all()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(ReadingModel))
        return int(result.scalar_one())
