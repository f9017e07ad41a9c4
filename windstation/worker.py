from __future__ import annotations

import asyncio
import logging
import signal
import time
from typing import Any, Iterable, Mapping

from dishka import make_async_container
from sqlalchemy.ext.asyncio import AsyncEngine

from windstation.container import AppProvider
from windstation.core.config import Settings
from windstation.core.logging_setup import setup_logging
from windstation.db.session import create_schema
from windstation.domain.collector import CollectorRunState
from windstation.services.ingest import IngestService
from windstation.services.source import SourceClient
from windstation.services.stations import StationService

logger = logging.getLogger(__name__)


def next_delay(interval: float, elapsed: float) -> float:
    return max(0.0, interval - elapsed)


class Collector:
    """Polls the source on a fixed cadence and writes through the store.

    One task runs :meth:`run`: a startup backfill, then a loop of cycles.
    A cycle never overlaps the previous one, and failures are recorded in
    :class:`CollectorRunState` instead of stopping the loop.
    """

    def __init__(self, container, settings: Settings, source: SourceClient, state: CollectorRunState) -> None:
        self._container = container
        self._settings = settings
        self._source = source
        self._state = state
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> CollectorRunState:
        return self._state

    async def _write(self, rows: Iterable[Mapping[str, Any]]) -> int:
        # one request scope == one transaction, committed when the scope closes
        async with self._container() as request_container:
            ingest = await request_container.get(IngestService)
            return await ingest.ingest(rows)

    async def backfill(self) -> int:
        inserted_total = 0
        for station_id in self._settings.station_id_list:
            if self._stop.is_set():
                logger.info("backfill interrupted before station=%s", station_id)
                break
            try:
                rows = await self._source.fetch_history(station_id, self._settings.backfill_limit)
                inserted = await self._write(rows)
            except Exception as exc:
                self._state.record_error(f"backfill station {station_id}: {exc}")
                logger.warning("backfill failed station=%s error=%s", station_id, exc)
                continue
            inserted_total += inserted
            logger.info("backfill station=%s fetched=%s inserted=%s", station_id, len(rows), inserted)
        self._state.record_backfill(inserted_total)
        return inserted_total

    async def collect_once(self) -> int:
        latest_by_station = await self._source.fetch_latest()
        rows = [
            latest_by_station[station_id]
            for station_id in self._settings.station_id_list
            if station_id in latest_by_station
        ]
        return await self._write(rows)

    async def run_cycle(self) -> None:
        self._state.begin_cycle()
        try:
            inserted = await self.collect_once()
        except Exception as exc:
            self._state.record_error(str(exc) or type(exc).__name__)
            logger.warning("collector cycle failed run=%s error=%s", self._state.total_runs, exc)
        else:
            self._state.record_success(inserted)
            if inserted:
                logger.info("collector cycle run=%s inserted=%s", self._state.total_runs, inserted)
        finally:
            self._state.end_cycle()

    async def run(self) -> None:
        interval = self._settings.collect_interval_seconds
        if not self._stop.is_set():
            inserted = await self.backfill()
            logger.info("backfill complete inserted=%s", inserted)
        while not self._stop.is_set():
            started = time.monotonic()
            await self.run_cycle()
            delay = next_delay(interval, time.monotonic() - started)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue
        logger.info("collector stopped runs=%s", self._state.total_runs)

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._stop.clear()
            self._task = asyncio.create_task(self.run(), name="windstation-collector")
        return self._task

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            # lets an in-flight cycle finish before the store is closed
            await self._task
            self._task = None


async def build_collector(container) -> Collector:
    settings = await container.get(Settings)
    source = await container.get(SourceClient)
    state = await container.get(CollectorRunState)
    return Collector(container, settings, source, state)


async def prepare_store(container) -> None:
    settings = await container.get(Settings)
    if settings.create_schema:
        await create_schema(await container.get(AsyncEngine))
    async with container() as request_container:
        stations = await request_container.get(StationService)
        await stations.sync_configured()


async def run_worker() -> None:
    settings = Settings()
    setup_logging(settings.log_level)
    container = make_async_container(AppProvider(settings))
    try:
        await prepare_store(container)
        collector = await build_collector(container)
        loop = asyncio.get_running_loop()
        stopped = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stopped.set)
        collector.start()
        await stopped.wait()
        await collector.stop()
    finally:
        await container.close()


def main() -> None:
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
