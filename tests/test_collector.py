import asyncio
from unittest.mock import AsyncMock

import pytest

from windstation.core.config import Settings
from windstation.domain.collector import CollectorRunState
from windstation.domain.errors import UpstreamError
from windstation.services.ingest import IngestService
from windstation.worker import Collector, next_delay


class FakeContainer:
    def __init__(self, ingest) -> None:
        self._ingest = ingest
        self.scopes = 0

    def __call__(self):
        self.scopes += 1
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def get(self, service_type):
        if service_type is IngestService:
            return self._ingest
        raise KeyError(service_type)


def make_collector(source, ingest, **overrides):
    settings = Settings(station_ids="1,2", station_names="", **overrides)
    state = CollectorRunState()
    container = FakeContainer(ingest)
    return Collector(container, settings, source, state), container


def test_next_delay_keeps_fixed_cadence():
    assert next_delay(5, 1.5) == pytest.approx(3.5)
    assert next_delay(5, 5) == 0
    assert next_delay(5, 9) == 0


@pytest.mark.asyncio
async def test_collect_once_writes_configured_stations_only():
    source = AsyncMock()
    source.fetch_latest.return_value = {1: {"id": "10"}, 2: {"id": "11"}, 3: {"id": "12"}}
    ingest = AsyncMock()
    ingest.ingest.return_value = 2
    collector, container = make_collector(source, ingest)

    inserted = await collector.collect_once()

    assert inserted == 2
    assert container.scopes == 1
    (rows,), _ = ingest.ingest.call_args
    assert rows == [{"id": "10"}, {"id": "11"}]


@pytest.mark.asyncio
async def test_run_cycle_records_success():
    source = AsyncMock()
    source.fetch_latest.return_value = {1: {"id": "10"}}
    ingest = AsyncMock()
    ingest.ingest.return_value = 1
    collector, _ = make_collector(source, ingest)

    await collector.run_cycle()

    snapshot = collector.state.snapshot()
    assert snapshot.total_runs == 1
    assert snapshot.total_inserted_rows == 1
    assert snapshot.total_errors == 0
    assert snapshot.running is False
    assert snapshot.last_success_at is not None
    assert snapshot.last_finished_at is not None


@pytest.mark.asyncio
async def test_run_cycle_failure_is_recorded_and_next_cycle_runs():
    source = AsyncMock()
    source.fetch_latest.side_effect = [UpstreamError("source API HTTP 502"), {1: {"id": "10"}}]
    ingest = AsyncMock()
    ingest.ingest.return_value = 1
    collector, _ = make_collector(source, ingest)

    await collector.run_cycle()
    snapshot = collector.state.snapshot()
    assert snapshot.total_runs == 1
    assert snapshot.total_errors == 1
    assert snapshot.last_error == "source API HTTP 502"
    assert snapshot.last_success_at is None
    assert snapshot.running is False

    await collector.run_cycle()
    snapshot = collector.state.snapshot()
    assert snapshot.total_runs == 2
    assert snapshot.total_inserted_rows == 1
    assert snapshot.last_error is None


@pytest.mark.asyncio
async def test_backfill_isolates_station_failures():
    source = AsyncMock()

    async def fetch_history(station_id, limit):
        if station_id == 1:
            raise UpstreamError("source API timed out after 20s")
        return [{"id": "1"}, {"id": "2"}]

    source.fetch_history.side_effect = fetch_history
    ingest = AsyncMock()
    ingest.ingest.return_value = 2
    collector, _ = make_collector(source, ingest, backfill_limit=50)

    inserted = await collector.backfill()

    assert inserted == 2
    source.fetch_history.assert_any_await(2, 50)
    snapshot = collector.state.snapshot()
    assert snapshot.total_errors == 1
    assert "station 1" in snapshot.last_error
    assert snapshot.backfill_inserted_rows == 2
    assert snapshot.backfill_completed_at is not None


@pytest.mark.asyncio
async def test_stop_during_backfill_skips_remaining_stations():
    calls = []

    async def fetch_history(station_id, limit):
        calls.append(station_id)
        await asyncio.sleep(0.3)
        return []

    source = AsyncMock()
    source.fetch_history.side_effect = fetch_history
    source.fetch_latest.return_value = {}
    ingest = AsyncMock()
    ingest.ingest.return_value = 0
    settings = Settings(station_ids="1,2,3", station_names="")
    collector = Collector(FakeContainer(ingest), settings, source, CollectorRunState())

    collector.start()
    await asyncio.sleep(0.05)
    loop = asyncio.get_running_loop()
    started = loop.time()
    await collector.stop()

    assert calls == [1]
    assert loop.time() - started < 0.6
    assert collector.state.total_runs == 0
    source.fetch_latest.assert_not_awaited()


@pytest.mark.asyncio
async def test_start_and_stop_runs_backfill_then_cycles():
    source = AsyncMock()
    source.fetch_history.return_value = []
    source.fetch_latest.return_value = {}
    ingest = AsyncMock()
    ingest.ingest.return_value = 0
    collector, _ = make_collector(source, ingest, collect_interval_seconds=60)

    task = collector.start()
    assert collector.start() is task
    for _ in range(50):
        if collector.state.total_runs:
            break
        await asyncio.sleep(0.01)
    await collector.stop()

    assert task.done()
    assert source.fetch_history.await_count == 2
    assert collector.state.total_runs == 1
    assert collector.state.running is False
