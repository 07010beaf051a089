from __future__ import annotations

from sqlmodel import Session

from tasktrail.core.config import get_settings
from tasktrail.core.logging import get_logger
from tasktrail.db.engine import create_engine_from_url
from tasktrail.db.migrations import upgrade_to_head
from tasktrail.db.seed import seed_initial_data

logger = get_logger("tasktrail.db.bootstrap")


def seed_database(database_url: str | None = None, *, with_tasks: bool = True) -> None:
    engine = create_engine_from_url(database_url or get_settings().database_url)
    try:
        with Session(engine) as session:
            seed_initial_data(session, with_tasks=with_tasks)
    finally:
        engine.dispose()


def initialize_database(database_url: str | None = None, *, seed: bool = True) -> None:
    """Bring the schema to the latest revision and optionally load sample data."""
    target_url = database_url or get_settings().database_url
    upgrade_to_head(target_url)
    if seed:
        seed_database(target_url)
    logger.info("db.initialized", seeded=seed)
