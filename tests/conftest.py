from datetime import datetime

import pytest_asyncio

from windstation.core.config import Settings
from windstation.db.session import create_engine, create_schema, create_session_factory
from windstation.domain.entities import Reading


def make_reading(
    source_id: int,
    station_id: int = 1,
    speed: float | None = 10.0,
    direction: float | None = 90.0,
    measured_at: str = "2024-01-01 00:00:00",
    inserted_at: datetime | None = None,
) -> Reading:
    return Reading(
        source_id=source_id,
        station_id=station_id,
        speed_kmh=speed,
        direction_deg=direction,
        measured_at=datetime.strptime(measured_at, "%Y-%m-%d %H:%M:%S"),
        inserted_at=inserted_at,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'wind.sqlite3'}")
    engine = create_engine(settings)
    await create_schema(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()
