from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from pytest import MonkeyPatch
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from tasktrail.api.deps import get_assignment_notifier
from tasktrail.core.config import get_settings
from tasktrail.db.engine import create_engine_from_url, dispose_engine
from tasktrail.db.models import Project, Tag, User
from tasktrail.main import create_app
from tests.shared import ApiTestContext, RecordingNotifier, ReferenceIds


def _to_sqlite_url(path: Path) -> str:
    return f"sqlite:///{path.as_posix()}"


def _seed_references(engine: Engine) -> ReferenceIds:
    with Session(engine) as session:
        actor = User(email="john@example.com", name="John Doe")
        assignee = User(email="jane@example.com", name="Jane Smith")
        other_user = User(email="bob@example.com", name="Bob Johnson")
        project = Project(name="Backend API")
        other_project = Project(name="Mobile App")
        bug = Tag(name="bug")
        feature = Tag(name="feature")
        session.add_all([actor, assignee, other_user, project, other_project, bug, feature])
        session.commit()
        return ReferenceIds(
            actor_id=actor.id,
            assignee_id=assignee.id,
            other_user_id=other_user.id,
            project_id=project.id,
            other_project_id=other_project.id,
            bug_tag_id=bug.id,
            feature_tag_id=feature.id,
        )


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine_from_url(_to_sqlite_url(tmp_path / "tasktrail.db"))
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def refs(engine: Engine) -> ReferenceIds:
    return _seed_references(engine)


@pytest.fixture
def session(engine: Engine, refs: ReferenceIds) -> Iterator[Session]:
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def api_context(tmp_path: Path, monkeypatch: MonkeyPatch) -> Iterator[ApiTestContext]:
    """
    Creates a temporary SQLite database and a test client.
    Seeds three users, two projects and two tags.
    """
    db_url = _to_sqlite_url(tmp_path / "api-integration.db")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", db_url)
    get_settings.cache_clear()
    dispose_engine()

    engine = create_engine_from_url(db_url)
    SQLModel.metadata.create_all(engine)
    refs = _seed_references(engine)

    notifier = RecordingNotifier()
    app = create_app()
    app.dependency_overrides[get_assignment_notifier] = lambda: notifier

    with TestClient(app) as client:
        yield ApiTestContext(client=client, engine=engine, notifier=notifier, refs=refs)

    engine.dispose()
    dispose_engine()
    get_settings.cache_clear()
