from __future__ import annotations

from collections.abc import Collection
from typing import Any, cast

from sqlmodel import Session, select

from tasktrail.core.errors import ErrorCode, NotFoundError
from tasktrail.db.models import Project, Tag, User


class ReferenceRepository:
    """Read access to projects, users and tags, which the core only references."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def require_project(self, project_id: str) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise NotFoundError(
                code=ErrorCode.PROJECT_NOT_FOUND,
                entity="Project",
                entity_id=project_id,
            )
        return project

    def require_user(self, user_id: str) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(code=ErrorCode.USER_NOT_FOUND, entity="User", entity_id=user_id)
        return user

    def require_tags(self, tag_ids: Collection[str]) -> list[Tag]:
        if not tag_ids:
            return []
        found = self.tags_by_id(tag_ids)
        for tag_id in sorted(set(tag_ids)):
            if tag_id not in found:
                raise NotFoundError(code=ErrorCode.TAG_NOT_FOUND, entity="Tag", entity_id=tag_id)
        return [found[tag_id] for tag_id in sorted(found)]

    def projects_by_id(self, project_ids: Collection[str]) -> dict[str, Project]:
        if not project_ids:
            return {}
        statement = select(Project).where(cast(Any, Project.id).in_(set(project_ids)))
        return {project.id: project for project in self.session.exec(statement).all()}

    def users_by_id(self, user_ids: Collection[str]) -> dict[str, User]:
        if not user_ids:
            return {}
        statement = select(User).where(cast(Any, User.id).in_(set(user_ids)))
        return {user.id: user for user in self.session.exec(statement).all()}

    def tags_by_id(self, tag_ids: Collection[str]) -> dict[str, Tag]:
        if not tag_ids:
            return {}
        statement = select(Tag).where(cast(Any, Tag.id).in_(set(tag_ids)))
        return {tag.id: tag for tag in self.session.exec(statement).all()}

    def list_projects(self) -> list[Project]:
        statement = select(Project).order_by(cast(Any, Project.name).asc())
        return list(self.session.exec(statement).all())

    def list_users(self) -> list[User]:
        statement = select(User).order_by(cast(Any, User.name).asc())
        return list(self.session.exec(statement).all())

    def list_tags(self) -> list[Tag]:
        statement = select(Tag).order_by(cast(Any, Tag.name).asc())
        return list(self.session.exec(statement).all())
