from __future__ import annotations

from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from alembic import command
from tasktrail.core.config import get_settings
from tasktrail.db.engine import create_engine_from_url, ensure_database_parent_dir

# alembic.ini and the alembic/ scripts sit at the repository root.
REPO_ROOT = Path(__file__).resolve().parents[2]


def _target_url(database_url: str | None) -> str:
    return database_url or get_settings().database_url


def alembic_config(database_url: str | None = None) -> Config:
    config = Config(str(REPO_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(REPO_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", _target_url(database_url))
    return config


def upgrade_to_head(database_url: str | None = None) -> None:
    target_url = _target_url(database_url)
    ensure_database_parent_dir(target_url)
    command.upgrade(alembic_config(target_url), "head")


def head_revision(database_url: str | None = None) -> str | None:
    return ScriptDirectory.from_config(alembic_config(database_url)).get_current_head()


def current_revision(database_url: str | None = None) -> str | None:
    """Revision stamped in the database, or None when it was never migrated."""
    target_url = _target_url(database_url)
    ensure_database_parent_dir(target_url)
    engine = create_engine_from_url(target_url)
    try:
        with engine.connect() as connection:
            return MigrationContext.configure(connection).get_current_revision()
    finally:
        engine.dispose()
