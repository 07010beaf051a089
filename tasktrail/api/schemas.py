from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tasktrail.db.enums import ActivityAction, TaskPriority, TaskStatus
from tasktrail.db.models import ensure_utc
from tasktrail.db.repositories import ActivityEntry, Page, TaskDetails

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class HealthzResponse(BaseModel):
    status: str
    service: str
    env: str


class ReadinessChecks(BaseModel):
    configuration: str
    database: str


class ReadyzResponse(BaseModel):
    status: str
    checks: ReadinessChecks


class PaginationMeta(CamelModel):
    total: int
    page: int
    per_page: int
    total_pages: int


class PaginatedResponse(CamelModel, Generic[T]):
    data: list[T]
    meta: PaginationMeta


def build_meta(page: Page[Any]) -> PaginationMeta:
    return PaginationMeta(
        total=page.total,
        page=page.page,
        per_page=page.page_size,
        total_pages=page.total_pages,
    )


class ProjectRead(CamelModel):
    id: str
    name: str
    description: str | None = None


class UserRead(CamelModel):
    id: str
    name: str
    email: str


class TagRead(CamelModel):
    id: str
    name: str


class TaskCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    project_id: str = Field(min_length=1, max_length=36)
    assignee_id: str | None = Field(default=None, min_length=1, max_length=36)
    tag_ids: list[str] | None = None
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Write release notes",
                "description": "Summarize the changes shipped this sprint.",
                "status": "TODO",
                "priority": "HIGH",
                "dueDate": "2026-11-01T17:00:00Z",
                "projectId": "4f1c2b9e-8d7a-4a51-9c43-0d5e2f1a6b70",
                "assigneeId": "a3d9e6c1-2b4f-4e8a-9f10-7c6b5a4d3e21",
                "tagIds": ["e1b2c3d4-0000-4000-8000-000000000001"],
            }
        }
    )


class TaskUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    project_id: str | None = Field(default=None, min_length=1, max_length=36)
    assignee_id: str | None = Field(default=None, min_length=1, max_length=36)
    tag_ids: list[str] | None = None
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "COMPLETED",
                "assigneeId": None,
                "tagIds": [],
            }
        }
    )


class TaskRead(CamelModel):
    id: str
    title: str
    description: str | None
    status: str
    priority: str
    due_date: datetime | None
    project_id: str
    assignee_id: str | None
    created_at: datetime
    updated_at: datetime
    project: ProjectRead | None
    assignee: UserRead | None
    tags: list[TagRead]

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @classmethod
    def from_details(cls, details: TaskDetails) -> TaskRead:
        task = details.task
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=str(task.status),
            priority=str(task.priority),
            due_date=task.due_date,
            project_id=task.project_id,
            assignee_id=task.assignee_id,
            created_at=task.created_at,
            updated_at=task.updated_at,
            project=ProjectRead.model_validate(details.project) if details.project else None,
            assignee=UserRead.model_validate(details.assignee) if details.assignee else None,
            tags=[TagRead.model_validate(tag) for tag in details.tags],
        )


class DeleteTaskResponse(BaseModel):
    message: str


class ActivityRead(CamelModel):
    id: str
    action: ActivityAction
    changes: dict[str, Any]
    task_id: str | None
    task_title: str
    user_id: str
    created_at: datetime
    user: UserRead | None

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def from_entry(cls, entry: ActivityEntry) -> ActivityRead:
        activity = entry.activity
        return cls(
            id=activity.id,
            action=ActivityAction(activity.action),
            changes=dict(activity.changes),
            task_id=activity.task_id,
            task_title=activity.task_title,
            user_id=activity.user_id,
            created_at=activity.created_at,
            user=UserRead.model_validate(entry.user) if entry.user else None,
        )
