# alembic/env.py

from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from sqlalchemy.engine.url import make_url
from alembic import context

from journal_api.config import settings
from journal_api.database import Base, import_models

import_models()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _sync_url() -> str:
    """Migrations run on a sync driver even though the app uses asyncpg/aiosqlite"""
    url = make_url(settings.DATABASE_URL)
    if url.drivername in ("postgres", "postgresql+asyncpg"):
        url = url.set(drivername="postgresql")
    elif url.drivername == "sqlite+aiosqlite":
        url = url.set(drivername="sqlite")
    return url.render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    context.configure(
        url=_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_sync_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
