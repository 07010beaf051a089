from __future__ import annotations

from fastapi import APIRouter

from tasktrail.api.deps import DbSession
from tasktrail.api.schemas import ProjectRead, TagRead, UserRead
from tasktrail.db.repositories import ReferenceRepository

router = APIRouter(tags=["references"])


@router.get("/projects", response_model=list[ProjectRead])
def list_projects(session: DbSession) -> list[ProjectRead]:
    return [ProjectRead.model_validate(item) for item in ReferenceRepository(session).list_projects()]


@router.get("/users", response_model=list[UserRead])
def list_users(session: DbSession) -> list[UserRead]:
    return [UserRead.model_validate(item) for item in ReferenceRepository(session).list_users()]


@router.get("/tags", response_model=list[TagRead])
def list_tags(session: DbSession) -> list[TagRead]:
    return [TagRead.model_validate(item) for item in ReferenceRepository(session).list_tags()]
