from __future__ import annotations

import asyncio
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection, make_url

from windstation.core.config import Settings
from windstation.db.base import Base
from windstation.db.session import create_engine
from windstation.db import models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
settings = Settings()


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _next_revision_id() -> str:
    versions_dir = Path(__file__).resolve().parent / "versions"
    numbers = [
        int(path.stem.split("_", 1)[0])
        for path in versions_dir.glob("*.py")
        if path.stem.split("_", 1)[0].isdigit()
    ]
    return f"{max(numbers, default=0) + 1:05d}"


def process_revision_directives(context, revision, directives) -> None:
    # keeps revision ids sequential instead of random hashes
    if directives and not getattr(directives[0], "rev_id", None):
        directives[0].rev_id = _next_revision_id()


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=_is_sqlite(settings.database_url),
        process_revision_directives=process_revision_directives,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=settings.database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_engine(settings)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
