from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlmodel import Field, SQLModel

from tasktrail.db.enums import ActivityAction, TaskPriority, TaskStatus


def utc_now() -> datetime:
    return datetime.now(UTC)


def generate_id() -> str:
    return str(uuid4())


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=generate_id, sa_column=Column(String(36), primary_key=True))
    email: str = Field(sa_column=Column(String(length=255), nullable=False, unique=True))
    name: str = Field(sa_column=Column(String(length=120), nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(default_factory=generate_id, sa_column=Column(String(36), primary_key=True))
    name: str = Field(sa_column=Column(String(length=120), nullable=False, index=True))
    description: str | None = Field(default=None, sa_column=Column(Text(), nullable=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Tag(SQLModel, table=True):
    __tablename__ = "tags"

    id: str = Field(default_factory=generate_id, sa_column=Column(String(36), primary_key=True))
    name: str = Field(sa_column=Column(String(length=80), nullable=False, unique=True))


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_project_status_priority", "project_id", "status", "priority"),
        Index("ix_tasks_created_at_id", "created_at", "id"),
    )

    id: str = Field(default_factory=generate_id, sa_column=Column(String(36), primary_key=True))
    title: str = Field(sa_column=Column(String(length=200), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text(), nullable=True))
    status: TaskStatus = Field(
        default=TaskStatus.TODO,
        sa_column=Column(String(length=32), nullable=False, index=True),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=Column(String(length=32), nullable=False, index=True),
    )
    due_date: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, index=True),
    )
    project_id: str = Field(
        sa_column=Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    )
    assignee_id: str | None = Field(
        default=None,
        sa_column=Column(String(36), ForeignKey("users.id"), nullable=True, index=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class TaskTag(SQLModel, table=True):
    __tablename__ = "task_tags"

    task_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("tasks.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    tag_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        )
    )


class Activity(SQLModel, table=True):
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_task_created", "task_id", "created_at"),
        Index("ix_activities_user_created", "user_id", "created_at"),
    )

    id: str = Field(default_factory=generate_id, sa_column=Column(String(36), primary_key=True))
    action: ActivityAction = Field(sa_column=Column(String(length=32), nullable=False, index=True))
    changes: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON(), nullable=False),
    )
    task_id: str | None = Field(
        default=None,
        sa_column=Column(
            String(36),
            ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    task_title: str = Field(sa_column=Column(String(length=200), nullable=False))
    user_id: str = Field(
        sa_column=Column(String(36), ForeignKey("users.id"), nullable=False)
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
