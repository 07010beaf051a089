"""Transactional task mutations with activity logging.

Each mutation moves through ``VALIDATING -> IN_TRANSACTION -> COMMITTED`` or
ends in ``ROLLED_BACK``. The task write and its activity record share one unit
of work, so either both are persisted or neither is. Assignment notifications
are scheduled only after a successful commit.

The returned task details are resolved inside the transaction. With a session
that does not expire on commit they stay valid even when another request
deletes the task straight after the commit.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any, Final

from sqlmodel import Session

from tasktrail.activity.diff import (
    ChangeSet,
    FieldChange,
    changes_to_json,
    merge_changes,
    scalar_changes,
    set_change,
    temporal_change,
    to_change_value,
)
from tasktrail.core.errors import ValidationFailedError
from tasktrail.core.logging import bind_log_context, get_logger
from tasktrail.db.enums import ActivityAction, TaskPriority, TaskStatus
from tasktrail.db.repositories import (
    ActivityRecord,
    ActivityRepository,
    NewTask,
    ReferenceRepository,
    TaskDetails,
    TaskRepository,
)
from tasktrail.db.session import unit_of_work
from tasktrail.notifications.dispatcher import AssignmentNotifier

logger = get_logger("tasktrail.orchestration.task_mutations")


class Unset(Enum):
    UNSET = "UNSET"


UNSET: Final = Unset.UNSET

# Python attribute -> name used in change sets and API payloads.
CHANGE_FIELD_NAMES: Final[dict[str, str]] = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "due_date": "dueDate",
    "project_id": "projectId",
    "assignee_id": "assigneeId",
    "tag_ids": "tagIds",
}
UPDATE_SCALAR_FIELDS: Final[tuple[str, ...]] = (
    "title",
    "description",
    "status",
    "priority",
    "assigneeId",
)
NON_NULLABLE_FIELDS: Final[frozenset[str]] = frozenset({"title", "status", "priority"})


class MutationState(StrEnum):
    VALIDATING = "validating"
    IN_TRANSACTION = "in_transaction"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True, slots=True)
class TaskChanges:
    """Mutation payload where every field is either ``UNSET``, ``None`` or a value.

    ``UNSET`` means "not mentioned" and leaves the stored value alone; ``None``
    clears nullable fields such as the assignee.
    """

    title: str | Unset = UNSET
    description: str | None | Unset = UNSET
    status: TaskStatus | Unset = UNSET
    priority: TaskPriority | Unset = UNSET
    due_date: datetime | None | Unset = UNSET
    project_id: str | Unset = UNSET
    assignee_id: str | None | Unset = UNSET
    tag_ids: list[str] | Unset = UNSET

    @classmethod
    def from_supplied(cls, values: dict[str, Any]) -> TaskChanges:
        known = {item.name for item in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValidationFailedError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        return cls(**values)

    def supplied(self) -> dict[str, Any]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not UNSET
        }


@dataclass(frozen=True, slots=True)
class DeletedTask:
    task_id: str
    title: str
    activity_id: str | None


class TaskMutationService:
    def __init__(self, session: Session, *, notifier: AssignmentNotifier | None = None) -> None:
        self.session = session
        self._notifier = notifier
        self._tasks = TaskRepository(session)
        self._activities = ActivityRepository(session)
        self._references = ReferenceRepository(session)

    def create(self, changes: TaskChanges, *, actor_id: str | None) -> TaskDetails:
        bind_log_context(actor_id=actor_id)
        supplied = changes.supplied()
        with self._transaction("create", task_id=None):
            data = self._validate_create(supplied)
            task = self._tasks.insert(data)
            if actor_id is not None:
                self._activities.append(
                    ActivityRecord(
                        action=ActivityAction.CREATED,
                        task_id=task.id,
                        task_title=task.title,
                        user_id=actor_id,
                        changes=changes_to_json(_created_changes(supplied)),
                    )
                )
            task_id = task.id
            details = self._tasks.get(task_id)

        logger.info(
            "task.created",
            task_id=task_id,
            project_id=details.task.project_id,
            status=str(details.task.status),
            activity_logged=actor_id is not None,
        )
        if details.assignee is not None:
            self._notify_assignment(details)
        return details

    def update(self, task_id: str, changes: TaskChanges, *, actor_id: str | None) -> TaskDetails:
        bind_log_context(task_id=task_id, actor_id=actor_id)
        supplied = changes.supplied()
        change_set: ChangeSet = {}
        with self._transaction("update", task_id=task_id):
            existing = self._tasks.get(task_id)
            before = _snapshot(existing)
            self._validate_update(supplied, current_project_id=existing.task.project_id)

            tag_ids = _unique(supplied["tag_ids"]) if "tag_ids" in supplied else None
            values = {
                name: value
                for name, value in supplied.items()
                if name not in {"tag_ids", "project_id"}
            }
            task = self._tasks.replace(task_id, values, tag_ids=tag_ids)

            if actor_id is not None:
                change_set = _updated_changes(before, supplied, tag_ids)
                if change_set:
                    self._activities.append(
                        ActivityRecord(
                            action=ActivityAction.UPDATED,
                            task_id=task.id,
                            task_title=task.title,
                            user_id=actor_id,
                            changes=changes_to_json(change_set),
                        )
                    )
            details = self._tasks.get(task_id)

        logger.info(
            "task.updated",
            task_id=task_id,
            changed_fields=sorted(change_set),
            activity_logged=bool(change_set),
        )
        new_assignee_id = supplied.get("assignee_id")
        if (
            new_assignee_id is not None
            and new_assignee_id != before["assigneeId"]
            and details.assignee is not None
        ):
            self._notify_assignment(details)
        return details

    def delete(self, task_id: str, *, actor_id: str | None) -> DeletedTask:
        bind_log_context(task_id=task_id, actor_id=actor_id)
        activity_id: str | None = None
        with self._transaction("delete", task_id=task_id):
            existing = self._tasks.get(task_id)
            title = existing.task.title
            self._tasks.delete(task_id)
            if actor_id is not None:
                # The row is gone, so the record must not point at it.
                activity = self._activities.append(
                    ActivityRecord(
                        action=ActivityAction.DELETED,
                        task_id=None,
                        task_title=title,
                        user_id=actor_id,
                        changes={},
                    )
                )
                activity_id = activity.id

        logger.info("task.deleted", task_id=task_id, activity_logged=activity_id is not None)
        return DeletedTask(task_id=task_id, title=title, activity_id=activity_id)

    @contextmanager
    def _transaction(self, operation: str, *, task_id: str | None) -> Iterator[None]:
        state = MutationState.VALIDATING
        try:
            with unit_of_work(self.session):
                state = MutationState.IN_TRANSACTION
                yield
        except BaseException as exc:
            logger.info(
                "task.mutation.rolled_back",
                operation=operation,
                task_id=task_id,
                from_state=state.value,
                state=MutationState.ROLLED_BACK.value,
                error_type=type(exc).__name__,
            )
            raise
        logger.debug(
            "task.mutation.committed",
            operation=operation,
            task_id=task_id,
            state=MutationState.COMMITTED.value,
        )

    def _validate_create(self, supplied: dict[str, Any]) -> NewTask:
        title = supplied.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationFailedError("title must be a non-empty string", field="title")
        project_id = supplied.get("project_id")
        if not isinstance(project_id, str) or not project_id:
            raise ValidationFailedError("projectId is required", field="projectId")
        for name in ("status", "priority"):
            if name in supplied and supplied[name] is None:
                raise ValidationFailedError(f"{name} cannot be null", field=name)

        self._references.require_project(project_id)
        assignee_id = supplied.get("assignee_id")
        if assignee_id is not None:
            self._references.require_user(assignee_id)
        tag_ids = _unique(supplied.get("tag_ids") or [])
        self._references.require_tags(tag_ids)

        return NewTask(
            title=title,
            project_id=project_id,
            description=supplied.get("description"),
            status=supplied.get("status") or TaskStatus.TODO,
            priority=supplied.get("priority") or TaskPriority.MEDIUM,
            due_date=supplied.get("due_date"),
            assignee_id=assignee_id,
            tag_ids=tag_ids,
        )

    def _validate_update(self, supplied: dict[str, Any], *, current_project_id: str) -> None:
        if "project_id" in supplied and supplied["project_id"] != current_project_id:
            raise ValidationFailedError(
                "projectId cannot be changed by an update",
                field="projectId",
            )
        for name in NON_NULLABLE_FIELDS:
            if name in supplied and supplied[name] is None:
                raise ValidationFailedError(f"{name} cannot be null", field=name)
        title = supplied.get("title")
        if title is not None and not title.strip():
            raise ValidationFailedError("title must be a non-empty string", field="title")

        assignee_id = supplied.get("assignee_id")
        if assignee_id is not None:
            self._references.require_user(assignee_id)
        if "tag_ids" in supplied:
            self._references.require_tags(supplied["tag_ids"])

    def _notify_assignment(self, details: TaskDetails) -> None:
        if self._notifier is None or details.assignee is None:
            return
        try:
            self._notifier.notify_assignment(details.assignee.email, details.task.title)
        except Exception as exc:
            logger.error(
                "notification.assignment.schedule_failed",
                task_id=details.task.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )


def _unique(values: list[str]) -> list[str]:
    return sorted(set(values))


def _snapshot(details: TaskDetails) -> dict[str, Any]:
    task = details.task
    return {
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "dueDate": task.due_date,
        "projectId": task.project_id,
        "assigneeId": task.assignee_id,
        "tags": details.tag_ids,
    }


def _created_changes(supplied: dict[str, Any]) -> ChangeSet:
    # Tag membership has no previous state on create.
    return {
        CHANGE_FIELD_NAMES[name]: FieldChange(old=None, new=to_change_value(value))
        for name, value in supplied.items()
        if name != "tag_ids"
    }


def _updated_changes(
    before: dict[str, Any],
    supplied: dict[str, Any],
    tag_ids: list[str] | None,
) -> ChangeSet:
    updates = {
        CHANGE_FIELD_NAMES[name]: value
        for name, value in supplied.items()
        if CHANGE_FIELD_NAMES[name] in UPDATE_SCALAR_FIELDS
    }
    temporal = (
        temporal_change(before["dueDate"], supplied["due_date"], "dueDate")
        if "due_date" in supplied
        else {}
    )
    tags = set_change(before["tags"], tag_ids, "tags") if tag_ids is not None else {}
    return merge_changes(scalar_changes(before, updates, UPDATE_SCALAR_FIELDS), temporal, tags)
