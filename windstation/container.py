from __future__ import annotations

from typing import AsyncIterator

import httpx
from dishka import Provider, Scope, provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from windstation.core.config import Settings
from windstation.db.session import create_engine, create_session_factory
from windstation.domain.collector import CollectorRunState
from windstation.repositories.interfaces import ReadingRepository, StationRepository
from windstation.repositories.sqlalchemy import SqlReadingRepository, SqlStationRepository
from windstation.services.ingest import IngestService
from windstation.services.readings import ReadingService
from windstation.services.source import SourceClient, build_http_client
from windstation.services.stations import StationService


class AppProvider(Provider):
    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self._settings = settings

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        return self._settings or Settings()

    @provide(scope=Scope.APP)
    async def provide_engine(self, settings: Settings) -> AsyncIterator[AsyncEngine]:
        engine = create_engine(settings)
        try:
            yield engine
        finally:
            await engine.dispose()

    @provide(scope=Scope.APP)
    def provide_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    @provide(scope=Scope.APP)
    async def provide_http_client(self, settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
        client = build_http_client(settings)
        try:
            yield client
        finally:
            await client.aclose()

    @provide(scope=Scope.APP)
    def provide_source_client(self, http: httpx.AsyncClient, settings: Settings) -> SourceClient:
        return SourceClient(http, settings)

    @provide(scope=Scope.APP)
    def provide_collector_state(self) -> CollectorRunState:
        return CollectorRunState()

    @provide(scope=Scope.REQUEST)
    async def provide_session(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @provide(scope=Scope.REQUEST)
    def provide_station_repo(self, session: AsyncSession) -> StationRepository:
        return SqlStationRepository(session)

    @provide(scope=Scope.REQUEST)
    def provide_reading_repo(self, session: AsyncSession) -> ReadingRepository:
        return SqlReadingRepository(session)

    @provide(scope=Scope.REQUEST)
    def provide_station_service(self, stations: StationRepository, settings: Settings) -> StationService:
        return StationService(stations, settings)

    @provide(scope=Scope.REQUEST)
    def provide_reading_service(self, readings: ReadingRepository, settings: Settings) -> ReadingService:
        return ReadingService(readings, settings)

    @provide(scope=Scope.REQUEST)
    def provide_ingest_service(self, stations: StationRepository, readings: ReadingRepository) -> IngestService:
        return IngestService(stations, readings)
