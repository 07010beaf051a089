from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

from sqlmodel import Session, select

from tasktrail.core.errors import ErrorCode, NotFoundError
from tasktrail.db.enums import ActivityAction
from tasktrail.db.models import Activity, User, ensure_utc
from tasktrail.db.repositories.common import Page, Pagination, paginate
from tasktrail.db.repositories.reference_repository import ReferenceRepository


@dataclass(frozen=True, slots=True)
class ActivityFilters:
    user_id: str | None = None
    action: ActivityAction | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    task_id: str | None = None


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    action: ActivityAction
    task_id: str | None
    task_title: str
    user_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    activity: Activity
    user: User | None


class ActivityRepository:
    """Append-only store of task activity records."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._references = ReferenceRepository(session)

    def append(self, record: ActivityRecord) -> Activity:
        activity = Activity(
            action=record.action,
            task_id=record.task_id,
            task_title=record.task_title,
            user_id=record.user_id,
            changes=dict(record.changes),
        )
        self.session.add(activity)
        self.session.flush()
        return activity

    def get(self, activity_id: str) -> ActivityEntry:
        activity = self.session.get(Activity, activity_id)
        if activity is None:
            raise NotFoundError(
                code=ErrorCode.ACTIVITY_NOT_FOUND,
                entity="Activity",
                entity_id=activity_id,
            )
        return self._resolve([activity])[0]

    def list(
        self,
        *,
        pagination: Pagination | None = None,
        filters: ActivityFilters | None = None,
    ) -> Page[ActivityEntry]:
        active_filters = filters or ActivityFilters()
        active_pagination = pagination or Pagination()

        statement = select(Activity)
        if active_filters.user_id is not None:
            statement = statement.where(Activity.user_id == active_filters.user_id)
        if active_filters.action is not None:
            statement = statement.where(Activity.action == active_filters.action.value)
        if active_filters.task_id is not None:
            statement = statement.where(Activity.task_id == active_filters.task_id)
        created_at = cast(Any, Activity.created_at)
        if active_filters.created_from is not None:
            statement = statement.where(created_at >= ensure_utc(active_filters.created_from))
        if active_filters.created_to is not None:
            statement = statement.where(created_at <= ensure_utc(active_filters.created_to))

        statement = statement.order_by(created_at.desc(), cast(Any, Activity.id).desc())
        page: Page[Activity] = paginate(self.session, statement, pagination=active_pagination)
        return Page(
            items=self._resolve(page.items),
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )

    def list_by_task(
        self,
        task_id: str,
        *,
        pagination: Pagination | None = None,
    ) -> Page[ActivityEntry]:
        return self.list(pagination=pagination, filters=ActivityFilters(task_id=task_id))

    def _resolve(self, activities: list[Activity]) -> list[ActivityEntry]:
        users = self._references.users_by_id({activity.user_id for activity in activities})
        return [
            ActivityEntry(activity=activity, user=users.get(activity.user_id))
            for activity in activities
        ]
