from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from tasktrail.api.deps import DbSession
from tasktrail.api.errors import error_response_docs
from tasktrail.api.schemas import ActivityRead, PaginatedResponse, build_meta
from tasktrail.db.enums import ActivityAction
from tasktrail.db.repositories import ActivityFilters, ActivityRepository, Pagination

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get(
    "",
    response_model=PaginatedResponse[ActivityRead],
    responses=error_response_docs(status.HTTP_422_UNPROCESSABLE_CONTENT),
)
def list_activities(
    session: DbSession,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
    action: Annotated[ActivityAction | None, Query()] = None,
    created_from: Annotated[datetime | None, Query(alias="from")] = None,
    created_to: Annotated[datetime | None, Query(alias="to")] = None,
    page: Annotated[str | None, Query()] = None,
    limit: Annotated[str | None, Query()] = None,
) -> PaginatedResponse[ActivityRead]:
    result = ActivityRepository(session).list(
        pagination=Pagination.from_raw(page, limit),
        filters=ActivityFilters(
            user_id=str(user_id) if user_id is not None else None,
            action=action,
            created_from=created_from,
            created_to=created_to,
        ),
    )
    return PaginatedResponse[ActivityRead](
        data=[ActivityRead.from_entry(entry) for entry in result.items],
        meta=build_meta(result),
    )


@router.get(
    "/{activity_id}",
    response_model=ActivityRead,
    responses=error_response_docs(status.HTTP_404_NOT_FOUND),
)
def get_activity(activity_id: str, session: DbSession) -> ActivityRead:
    return ActivityRead.from_entry(ActivityRepository(session).get(activity_id))
