from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query, status

from tasktrail.api.deps import ActorId, DbSession, Notifier
from tasktrail.api.errors import error_response_docs
from tasktrail.api.schemas import (
    ActivityRead,
    DeleteTaskResponse,
    PaginatedResponse,
    TaskCreate,
    TaskRead,
    TaskUpdate,
    build_meta,
)
from tasktrail.db.enums import TaskPriority, TaskStatus
from tasktrail.db.repositories import (
    ActivityRepository,
    Pagination,
    TaskFilters,
    TaskRepository,
)
from tasktrail.orchestration.task_mutations import TaskChanges, TaskMutationService

router = APIRouter(prefix="/tasks", tags=["tasks"])

PageParam = Annotated[str | None, Query(description="Page number, defaults to 1.")]
LimitParam = Annotated[str | None, Query(description="Page size, defaults to 20.")]


def _create_changes(payload: TaskCreate) -> TaskChanges:
    supplied = payload.model_dump(exclude_unset=True)
    if supplied.get("tag_ids") is None:
        supplied.pop("tag_ids", None)
    return TaskChanges.from_supplied(supplied)


def _update_changes(payload: TaskUpdate) -> TaskChanges:
    supplied = payload.model_dump(exclude_unset=True)
    # A null tag list means "leave tags alone"; an empty list clears them.
    if supplied.get("tag_ids") is None:
        supplied.pop("tag_ids", None)
    return TaskChanges.from_supplied(supplied)


@router.get(
    "",
    response_model=PaginatedResponse[TaskRead],
    responses=error_response_docs(status.HTTP_422_UNPROCESSABLE_CONTENT),
)
def list_tasks(
    session: DbSession,
    status_filter: Annotated[TaskStatus | None, Query(alias="status")] = None,
    priority: Annotated[TaskPriority | None, Query()] = None,
    assignee_id: Annotated[str | None, Query(alias="assigneeId")] = None,
    project_id: Annotated[str | None, Query(alias="projectId")] = None,
    due_date_from: Annotated[datetime | None, Query(alias="dueDateFrom")] = None,
    due_date_to: Annotated[datetime | None, Query(alias="dueDateTo")] = None,
    page: PageParam = None,
    limit: LimitParam = None,
) -> PaginatedResponse[TaskRead]:
    result = TaskRepository(session).list(
        pagination=Pagination.from_raw(page, limit),
        filters=TaskFilters(
            status=status_filter,
            priority=priority,
            assignee_id=assignee_id,
            project_id=project_id,
            due_date_from=due_date_from,
            due_date_to=due_date_to,
        ),
    )
    return PaginatedResponse[TaskRead](
        data=[TaskRead.from_details(details) for details in result.items],
        meta=build_meta(result),
    )


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    responses=error_response_docs(status.HTTP_404_NOT_FOUND),
)
def get_task(task_id: str, session: DbSession) -> TaskRead:
    return TaskRead.from_details(TaskRepository(session).get(task_id))


@router.get(
    "/{task_id}/activities",
    response_model=PaginatedResponse[ActivityRead],
)
def list_task_activities(
    task_id: str,
    session: DbSession,
    page: PageParam = None,
    limit: LimitParam = None,
) -> PaginatedResponse[ActivityRead]:
    result = ActivityRepository(session).list_by_task(
        task_id,
        pagination=Pagination.from_raw(page, limit),
    )
    return PaginatedResponse[ActivityRead](
        data=[ActivityRead.from_entry(entry) for entry in result.items],
        meta=build_meta(result),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=TaskRead,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
        status.HTTP_422_UNPROCESSABLE_CONTENT,
    ),
)
def create_task(
    payload: TaskCreate,
    actor_id: ActorId,
    session: DbSession,
    notifier: Notifier,
) -> TaskRead:
    service = TaskMutationService(session, notifier=notifier)
    details = service.create(_create_changes(payload), actor_id=actor_id)
    return TaskRead.from_details(details)


@router.api_route(
    "/{task_id}",
    methods=["PATCH", "PUT"],
    response_model=TaskRead,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
        status.HTTP_422_UNPROCESSABLE_CONTENT,
    ),
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    actor_id: ActorId,
    session: DbSession,
    notifier: Notifier,
) -> TaskRead:
    service = TaskMutationService(session, notifier=notifier)
    details = service.update(task_id, _update_changes(payload), actor_id=actor_id)
    return TaskRead.from_details(details)


@router.delete(
    "/{task_id}",
    response_model=DeleteTaskResponse,
    responses=error_response_docs(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
    ),
)
def delete_task(task_id: str, actor_id: ActorId, session: DbSession) -> DeleteTaskResponse:
    TaskMutationService(session).delete(task_id, actor_id=actor_id)
    return DeleteTaskResponse(message="Task deleted successfully")
