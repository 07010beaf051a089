from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from sqlalchemy import delete, event
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from tasktrail.core.errors import ConflictError, ErrorCode, NotFoundError, ValidationFailedError
from tasktrail.db.enums import ActivityAction, TaskPriority, TaskStatus
from tasktrail.db.models import Activity, Task
from tasktrail.db.repositories import ActivityRepository
from tasktrail.orchestration import UNSET, TaskChanges, TaskMutationService
from tests.shared import RecordingNotifier, ReferenceIds


def _activities(session: Session) -> list[Activity]:
    session.expire_all()
    return list(session.exec(select(Activity)).all())


def _create(
    service: TaskMutationService,
    refs: ReferenceIds,
    **overrides: object,
) -> str:
    values: dict[str, object] = {"title": "Write docs", "project_id": refs.project_id}
    values.update(overrides)
    details = service.create(TaskChanges.from_supplied(values), actor_id=refs.actor_id)
    return details.task.id


def test_task_changes_tracks_supplied_fields() -> None:
    changes = TaskChanges(title="x", assignee_id=None)

    assert changes.supplied() == {"title": "x", "assignee_id": None}
    assert changes.status is UNSET


def test_task_changes_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationFailedError, match="Unknown task fields: colour"):
        TaskChanges.from_supplied({"colour": "red"})


def test_create_logs_one_created_activity(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)

    details = service.create(
        TaskChanges(
            title="Write docs",
            project_id=refs.project_id,
            priority=TaskPriority.HIGH,
            tag_ids=[refs.bug_tag_id],
        ),
        actor_id=refs.actor_id,
    )

    assert details.task.status == TaskStatus.TODO
    assert details.tag_ids == [refs.bug_tag_id]
    activities = _activities(session)
    assert len(activities) == 1
    created = activities[0]
    assert created.action == ActivityAction.CREATED
    assert created.task_id == details.task.id
    assert created.task_title == "Write docs"
    assert created.user_id == refs.actor_id
    assert created.changes == {
        "title": {"old": None, "new": "Write docs"},
        "projectId": {"old": None, "new": refs.project_id},
        "priority": {"old": None, "new": "HIGH"},
    }


def test_create_without_actor_skips_activity(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)

    service.create(
        TaskChanges(title="Quiet", project_id=refs.project_id),
        actor_id=None,
    )

    assert _activities(session) == []
    assert len(session.exec(select(Task)).all()) == 1


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"project_id": "missing-project"}, ErrorCode.PROJECT_NOT_FOUND),
        ({"assignee_id": "missing-user"}, ErrorCode.USER_NOT_FOUND),
        ({"tag_ids": ["missing-tag"]}, ErrorCode.TAG_NOT_FOUND),
    ],
)
def test_create_with_unknown_reference_writes_nothing(
    session: Session,
    refs: ReferenceIds,
    overrides: dict[str, object],
    code: ErrorCode,
) -> None:
    service = TaskMutationService(session)

    with pytest.raises(NotFoundError) as exc_info:
        _create(service, refs, **overrides)

    assert exc_info.value.code == code
    assert session.exec(select(Task)).all() == []
    assert _activities(session) == []


def test_create_rejects_blank_title(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)

    with pytest.raises(ValidationFailedError) as exc_info:
        _create(service, refs, title="   ")

    assert exc_info.value.field == "title"


def test_unknown_actor_rolls_back_task_write(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)

    with pytest.raises(ConflictError):
        service.create(
            TaskChanges(title="Orphan", project_id=refs.project_id),
            actor_id=str(uuid4()),
        )

    assert session.exec(select(Task)).all() == []
    assert _activities(session) == []


def test_update_records_only_changed_fields(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs, priority=TaskPriority.LOW)

    service.update(
        task_id,
        TaskChanges(
            title="Write docs",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.LOW,
            assignee_id=refs.assignee_id,
        ),
        actor_id=refs.actor_id,
    )

    updated = [item for item in _activities(session) if item.action == ActivityAction.UPDATED]
    assert len(updated) == 1
    assert updated[0].changes == {
        "status": {"old": "TODO", "new": "IN_PROGRESS"},
        "assigneeId": {"old": None, "new": refs.assignee_id},
    }


def test_noop_update_writes_no_activity(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs, status=TaskStatus.IN_PROGRESS)

    service.update(
        task_id,
        TaskChanges(title="Write docs", status=TaskStatus.IN_PROGRESS),
        actor_id=refs.actor_id,
    )
    service.update(task_id, TaskChanges(), actor_id=refs.actor_id)

    actions = [item.action for item in _activities(session)]
    assert actions == [ActivityAction.CREATED]


def test_due_date_only_update_yields_canonical_due_date_change(
    session: Session,
    refs: ReferenceIds,
) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs, due_date=datetime(2026, 4, 1, 8, 0, tzinfo=UTC))

    service.update(
        task_id,
        TaskChanges(due_date=datetime(2026, 4, 2, 8, 0, 0, 250000, tzinfo=UTC)),
        actor_id=refs.actor_id,
    )

    updated = [item for item in _activities(session) if item.action == ActivityAction.UPDATED]
    assert [item.changes for item in updated] == [
        {
            "dueDate": {
                "old": "2026-04-01T08:00:00.000Z",
                "new": "2026-04-02T08:00:00.250Z",
            }
        }
    ]


def test_update_replaces_tags_and_records_set_change(
    session: Session,
    refs: ReferenceIds,
) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs, tag_ids=[refs.bug_tag_id])

    details = service.update(
        task_id,
        TaskChanges(tag_ids=[refs.feature_tag_id, refs.feature_tag_id]),
        actor_id=refs.actor_id,
    )

    assert details.tag_ids == [refs.feature_tag_id]
    updated = [item for item in _activities(session) if item.action == ActivityAction.UPDATED]
    assert updated[0].changes == {
        "tags": {"old": [refs.bug_tag_id], "new": [refs.feature_tag_id]},
    }


def test_update_rejects_project_change_and_nulls(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs)

    with pytest.raises(ValidationFailedError) as project_exc:
        service.update(
            task_id,
            TaskChanges(project_id=refs.other_project_id),
            actor_id=refs.actor_id,
        )
    with pytest.raises(ValidationFailedError) as status_exc:
        service.update(
            task_id,
            TaskChanges.from_supplied({"status": None}),
            actor_id=refs.actor_id,
        )

    assert project_exc.value.field == "projectId"
    assert status_exc.value.field == "status"


def test_update_missing_task_raises_not_found(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)

    with pytest.raises(NotFoundError) as exc_info:
        service.update("missing-task", TaskChanges(title="x"), actor_id=refs.actor_id)

    assert exc_info.value.code == ErrorCode.TASK_NOT_FOUND


def test_failed_update_leaves_task_untouched(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs)

    with pytest.raises(NotFoundError):
        service.update(
            task_id,
            TaskChanges(title="Renamed", tag_ids=["missing-tag"]),
            actor_id=refs.actor_id,
        )

    session.expire_all()
    task = session.get(Task, task_id)
    assert task is not None
    assert task.title == "Write docs"
    assert len(_activities(session)) == 1


def test_delete_logs_detached_activity(session: Session, refs: ReferenceIds) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs, title="Short lived")

    deleted = service.delete(task_id, actor_id=refs.actor_id)

    assert deleted.title == "Short lived"
    assert deleted.activity_id is not None
    entry = ActivityRepository(session).get(deleted.activity_id)
    assert entry.activity.action == ActivityAction.DELETED
    assert entry.activity.task_id is None
    assert entry.activity.task_title == "Short lived"
    assert entry.activity.changes == {}
    session.expire_all()
    assert session.get(Task, task_id) is None
    created = [item for item in _activities(session) if item.action == ActivityAction.CREATED]
    assert created[0].task_id is None


def test_notifications_follow_assignment_changes(session: Session, refs: ReferenceIds) -> None:
    notifier = RecordingNotifier()
    service = TaskMutationService(session, notifier=notifier)

    task_id = _create(service, refs, title="Ship it", assignee_id=refs.assignee_id)
    service.update(task_id, TaskChanges(assignee_id=refs.assignee_id), actor_id=refs.actor_id)
    service.update(task_id, TaskChanges(assignee_id=None), actor_id=refs.actor_id)
    service.update(task_id, TaskChanges(assignee_id=refs.other_user_id), actor_id=refs.actor_id)
    _create(service, refs, title="Unassigned")

    assert notifier.calls == [
        ("jane@example.com", "Ship it"),
        ("bob@example.com", "Ship it"),
    ]


def test_notifier_failure_does_not_undo_mutation(session: Session, refs: ReferenceIds) -> None:
    class ExplodingNotifier:
        def notify_assignment(self, assignee_email: str, task_title: str) -> None:
            raise RuntimeError("executor gone")

    service = TaskMutationService(session, notifier=ExplodingNotifier())

    task_id = _create(service, refs, assignee_id=refs.assignee_id)

    session.expire_all()
    assert session.get(Task, task_id) is not None


def _delete_tasks_after_next_commit(session: Session, engine: Engine) -> None:
    """Remove every task from a separate connection as soon as ``session`` commits."""

    def remove_tasks(_: Session) -> None:
        with engine.begin() as connection:
            connection.execute(delete(Task))

    event.listen(session, "after_commit", remove_tasks, once=True)


def test_create_survives_delete_right_after_commit(
    session: Session, engine: Engine, refs: ReferenceIds
) -> None:
    notifier = RecordingNotifier()
    service = TaskMutationService(session, notifier=notifier)
    _delete_tasks_after_next_commit(session, engine)

    details = service.create(
        TaskChanges(
            title="Gone quickly",
            project_id=refs.project_id,
            assignee_id=refs.assignee_id,
            tag_ids=[refs.bug_tag_id],
        ),
        actor_id=refs.actor_id,
    )

    assert details.task.title == "Gone quickly"
    assert details.tag_ids == [refs.bug_tag_id]
    assert details.assignee is not None
    assert notifier.calls == [("jane@example.com", "Gone quickly")]
    session.expire_all()
    assert session.get(Task, details.task.id) is None
    assert [item.action for item in _activities(session)] == [ActivityAction.CREATED]


def test_update_survives_delete_right_after_commit(
    session: Session, engine: Engine, refs: ReferenceIds
) -> None:
    service = TaskMutationService(session)
    task_id = _create(service, refs, title="Racing")
    _delete_tasks_after_next_commit(session, engine)

    details = service.update(
        task_id,
        TaskChanges(status=TaskStatus.IN_PROGRESS),
        actor_id=refs.other_user_id,
    )

    assert details.task.id == task_id
    assert details.task.status == TaskStatus.IN_PROGRESS
    updated = [item for item in _activities(session) if item.action == ActivityAction.UPDATED]
    assert len(updated) == 1
    assert updated[0].changes == {"status": {"old": "TODO", "new": "IN_PROGRESS"}}
    assert updated[0].task_id is None
