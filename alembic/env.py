from typing import Any

from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

from alembic import context
from tasktrail.core.config import get_settings
from tasktrail.db import models  # noqa: F401
from tasktrail.db.engine import enforce_sqlite_foreign_keys

config = context.config
# Callers of tasktrail.db.migrations always set the url; bare `alembic` runs fall back to settings.
database_url = config.get_main_option("sqlalchemy.url") or get_settings().database_url
config.set_main_option("sqlalchemy.url", database_url)


def _configure(**options: Any) -> None:
    # SQLite cannot ALTER constraints in place, so every revision runs in batch mode.
    context.configure(target_metadata=SQLModel.metadata, render_as_batch=True, **options)


def run_migrations_offline() -> None:
    _configure(url=database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    enforce_sqlite_foreign_keys(connectable, database_url)

    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
