from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dishka import make_async_container
from dishka.integrations.fastapi import setup_dishka

from windstation.api.routes import health_router, readings_router, stations_router
from windstation.container import AppProvider
from windstation.core.config import Settings
from windstation.core.logging_setup import setup_logging
from windstation.worker import build_collector, prepare_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    container = app.state.dishka_container
    settings = await container.get(Settings)
    await prepare_store(container)
    collector = None
    if settings.collector_enabled:
        collector = await build_collector(container)
        collector.start()
        logger.info(
            "collector started stations=%s interval=%ss",
            settings.station_id_list,
            settings.collect_interval_seconds,
        )
    try:
        yield
    finally:
        if collector is not None:
            await collector.stop()
        await container.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.log_level)
    app = FastAPI(title="Wind Station API", lifespan=lifespan)
    origins = settings.cors_origin_list or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET"] if origins != ["*"] else ["*"],
        allow_headers=["*"],
    )
    app.include_router(health_router)
    app.include_router(stations_router, prefix="/api")
    app.include_router(readings_router, prefix="/api")

    container = make_async_container(AppProvider(settings))
    setup_dishka(container, app)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "windstation.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
