from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, cast

from sqlalchemy import delete
from sqlmodel import Session, select

from tasktrail.core.errors import task_not_found
from tasktrail.db.enums import TaskPriority, TaskStatus
from tasktrail.db.models import Project, Tag, Task, TaskTag, User, ensure_utc, utc_now
from tasktrail.db.repositories.common import Page, Pagination, paginate
from tasktrail.db.repositories.reference_repository import ReferenceRepository

# Columns a mutation may write through ``replace``.
WRITABLE_TASK_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "status", "priority", "due_date", "assignee_id", "project_id"}
)


@dataclass(frozen=True, slots=True)
class TaskFilters:
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assignee_id: str | None = None
    project_id: str | None = None
    due_date_from: datetime | None = None
    due_date_to: datetime | None = None


@dataclass(frozen=True, slots=True)
class NewTask:
    title: str
    project_id: str
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    assignee_id: str | None = None
    tag_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TaskDetails:
    """A task with its project, assignee and tags resolved."""

    task: Task
    project: Project | None
    assignee: User | None
    tags: list[Tag]

    @property
    def tag_ids(self) -> list[str]:
        return sorted(tag.id for tag in self.tags)


class TaskRepository:
    def __init__(self, session: Session) -> None:
        self.session = session
        self._references = ReferenceRepository(session)

    def list(
        self,
        *,
        pagination: Pagination | None = None,
        filters: TaskFilters | None = None,
    ) -> Page[TaskDetails]:
        active_filters = filters or TaskFilters()
        active_pagination = pagination or Pagination()

        statement = select(Task)
        if active_filters.status is not None:
            statement = statement.where(Task.status == active_filters.status.value)
        if active_filters.priority is not None:
            statement = statement.where(Task.priority == active_filters.priority.value)
        if active_filters.assignee_id is not None:
            statement = statement.where(Task.assignee_id == active_filters.assignee_id)
        if active_filters.project_id is not None:
            statement = statement.where(Task.project_id == active_filters.project_id)
        due_date = cast(Any, Task.due_date)
        if active_filters.due_date_from is not None:
            statement = statement.where(due_date >= ensure_utc(active_filters.due_date_from))
        if active_filters.due_date_to is not None:
            statement = statement.where(due_date <= ensure_utc(active_filters.due_date_to))

        statement = statement.order_by(
            cast(Any, Task.created_at).asc(),
            cast(Any, Task.id).asc(),
        )
        page: Page[Task] = paginate(self.session, statement, pagination=active_pagination)
        return Page(
            items=self._resolve(page.items),
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )

    def get(self, task_id: str) -> TaskDetails:
        return self._resolve([self._require(task_id)])[0]

    def tag_ids(self, task_id: str) -> list[str]:
        statement = select(TaskTag.tag_id).where(TaskTag.task_id == task_id)
        return sorted(self.session.exec(statement).all())

    def insert(self, data: NewTask) -> Task:
        task = Task(
            title=data.title,
            description=data.description,
            status=data.status,
            priority=data.priority,
            due_date=ensure_utc(data.due_date) if data.due_date is not None else None,
            project_id=data.project_id,
            assignee_id=data.assignee_id,
        )
        self.session.add(task)
        self.session.flush()
        self._link_tags(task.id, data.tag_ids)
        return task

    def replace(
        self,
        task_id: str,
        values: Mapping[str, Any],
        *,
        tag_ids: Collection[str] | None = None,
    ) -> Task:
        """Overwrite the given columns and, when ``tag_ids`` is not None, the whole tag set."""
        task = self._require(task_id)
        unknown = set(values) - WRITABLE_TASK_FIELDS
        if unknown:
            raise ValueError(f"Unsupported task fields: {', '.join(sorted(unknown))}")

        for field_name, value in values.items():
            if field_name == "due_date" and value is not None:
                value = ensure_utc(value)
            setattr(task, field_name, value)
        task.updated_at = utc_now()
        self.session.add(task)

        if tag_ids is not None:
            current = set(self.tag_ids(task_id))
            target = set(tag_ids)
            removed = current - target
            if removed:
                self.session.exec(
                    cast(
                        Any,
                        delete(TaskTag)
                        .where(cast(Any, TaskTag.task_id) == task_id)
                        .where(cast(Any, TaskTag.tag_id).in_(removed)),
                    )
                )
            self._link_tags(task_id, target - current)
        self.session.flush()
        return task

    def delete(self, task_id: str) -> Task:
        task = self._require(task_id)
        self.session.exec(cast(Any, delete(TaskTag).where(cast(Any, TaskTag.task_id) == task_id)))
        self.session.delete(task)
        self.session.flush()
        return task

    def _require(self, task_id: str) -> Task:
        task = self.session.get(Task, task_id)
        if task is None:
            raise task_not_found(task_id)
        return task

    def _link_tags(self, task_id: str, tag_ids: Collection[str]) -> None:
        for tag_id in sorted(set(tag_ids)):
            self.session.add(TaskTag(task_id=task_id, tag_id=tag_id))
        self.session.flush()

    def _resolve(self, tasks: list[Task]) -> list[TaskDetails]:
        if not tasks:
            return []
        task_ids = [task.id for task in tasks]
        projects = self._references.projects_by_id({task.project_id for task in tasks})
        users = self._references.users_by_id(
            {task.assignee_id for task in tasks if task.assignee_id is not None}
        )

        link_statement = select(TaskTag).where(cast(Any, TaskTag.task_id).in_(task_ids))
        links = list(self.session.exec(link_statement).all())
        tags = self._references.tags_by_id({link.tag_id for link in links})
        tags_by_task: dict[str, list[Tag]] = defaultdict(list)
        for link in links:
            tag = tags.get(link.tag_id)
            if tag is not None:
                tags_by_task[link.task_id].append(tag)

        return [
            TaskDetails(
                task=task,
                project=projects.get(task.project_id),
                assignee=users.get(task.assignee_id) if task.assignee_id is not None else None,
                tags=sorted(tags_by_task.get(task.id, []), key=lambda tag: tag.name),
            )
            for task in tasks
        ]
