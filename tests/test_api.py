import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import make_reading
from windstation.core.config import Settings
from windstation.db.session import create_engine, create_schema, create_session_factory
from windstation.main import create_app
from windstation.repositories.sqlalchemy import SqlReadingRepository, SqlStationRepository


async def seed(settings: Settings) -> None:
    engine = create_engine(settings)
    try:
        await create_schema(engine)
        async with create_session_factory(engine)() as session:
            await SqlStationRepository(session).upsert(1, "Old label")
            await SqlReadingRepository(session).insert_batch(
                [
                    make_reading(1, speed=10, direction=350, measured_at="2024-01-01 00:00:00"),
                    make_reading(2, speed=20, direction=10, measured_at="2024-01-01 00:01:00"),
                    make_reading(3, speed=30, direction=90, measured_at="2024-01-01 00:07:00"),
                ]
            )
            await session.commit()
    finally:
        await engine.dispose()


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.sqlite3'}",
        collector_enabled=False,
        station_ids="1,2",
        station_names="1:Chipilo",
    )
    asyncio.run(seed(settings))
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def test_root_lists_configured_stations(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"service": "windstation-api", "status": "ok", "stations": [1, 2]}


def test_stations_are_synced_from_settings(client):
    resp = client.get("/api/stations")
    assert resp.status_code == 200
    assert resp.json()["stations"] == [
        {"station_id": 1, "name": "Chipilo"},
        {"station_id": 2, "name": "Station 2"},
    ]


def test_health_reports_rows_and_idle_collector(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["rows"] == 3
    assert body["collector"]["total_runs"] == 0
    assert body["collector"]["running"] is False


def test_latest_returns_newest_source_row(client):
    resp = client.get("/api/latest", params={"station_id": 1})
    assert resp.status_code == 200
    (item,) = resp.json()["items"]
    assert item["source_id"] == 3
    assert item["station_name"] == "Chipilo"
    assert item["is_stale"] is False

    assert client.get("/api/latest", params={"station_id": 2}).json() == {"items": []}


def test_history_buckets(client):
    resp = client.get("/api/history", params={"station_id": 1, "range": "1h", "bucket_minutes": 5})
    assert resp.status_code == 200
    body = resp.json()
    assert body["from"].startswith("2023-12-31T23:07:00")
    assert body["to"].startswith("2024-01-01T00:07:00")
    first, second = body["items"]
    assert first["sample_count"] == 2
    assert first["avg_speed_kmh"] == pytest.approx(15.0)
    assert second["sample_count"] == 1
    assert second["avg_direction_deg"] == pytest.approx(90.0)


def test_history_raw_rows(client):
    resp = client.get("/api/history", params={"station_id": 1, "range": "5m"})
    assert resp.status_code == 200
    assert [item["source_id"] for item in resp.json()["items"]] == [3]


def test_stats_windows(client):
    resp = client.get("/api/stats", params={"station_id": 1, "windows": "5m,1h"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["latest_ts"].startswith("2024-01-01T00:07:00")
    assert body["stats"]["5m"]["count"] == 1
    assert body["stats"]["1h"]["count"] == 3
    assert body["stats"]["1h"]["max_speed_kmh"] == 30


def test_wind_rose(client):
    resp = client.get("/api/wind-rose", params={"station_id": 1, "range": "1h", "bins": 4})
    assert resp.status_code == 200
    counts = [item["count"] for item in resp.json()["items"]]
    assert counts == [1, 1, 0, 1]


def test_unknown_station_is_not_found(client):
    resp = client.get("/api/stats", params={"station_id": 2})
    assert resp.status_code == 404


def test_bad_tokens_are_client_errors(client):
    assert client.get("/api/history", params={"station_id": 1, "range": "6x"}).status_code == 400
    assert client.get("/api/stats", params={"station_id": 1, "windows": " , "}).status_code == 400
    assert client.get("/api/history", params={"station_id": 1, "bucket_minutes": 0}).status_code == 422
    assert client.get("/api/wind-rose", params={"station_id": 1, "bins": 3}).status_code == 422
    assert client.get("/api/history").status_code == 422


def test_run_serves_app_with_configured_bind(monkeypatch):
    import uvicorn

    from windstation import main

    calls = []
    monkeypatch.setenv("WIND_API_HOST", "127.0.0.1")
    monkeypatch.setenv("WIND_API_PORT", "9001")
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    main.run()

    assert calls == [("windstation.main:app", {"host": "127.0.0.1", "port": 9001, "log_level": "info"})]
