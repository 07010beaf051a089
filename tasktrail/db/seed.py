from __future__ import annotations

from datetime import timedelta
from itertools import cycle
from typing import Any

from sqlmodel import Session, select

from tasktrail.activity.diff import ChangeSet, FieldChange, changes_to_json, to_change_value
from tasktrail.core.logging import get_logger
from tasktrail.db.enums import ActivityAction, TaskPriority, TaskStatus
from tasktrail.db.models import Activity, Project, Tag, Task, TaskTag, User, utc_now

logger = get_logger("tasktrail.db.seed")

DEFAULT_USERS: tuple[tuple[str, str], ...] = (
    ("john@example.com", "John Doe"),
    ("jane@example.com", "Jane Smith"),
    ("bob@example.com", "Bob Johnson"),
)
DEFAULT_PROJECTS: tuple[str, ...] = ("Backend API", "Mobile App", "Data Migration")
DEFAULT_TAGS: tuple[str, ...] = ("bug", "feature", "enhancement", "documentation")
SAMPLE_TASK_COUNT = 12


def _seed_users(session: Session) -> list[User]:
    existing = {user.email: user for user in session.exec(select(User)).all()}
    users: list[User] = []
    for email, name in DEFAULT_USERS:
        user = existing.get(email)
        if user is None:
            user = User(email=email, name=name)
            session.add(user)
        users.append(user)
    return users


def _seed_projects(session: Session) -> list[Project]:
    existing = {project.name: project for project in session.exec(select(Project)).all()}
    projects: list[Project] = []
    for name in DEFAULT_PROJECTS:
        project = existing.get(name)
        if project is None:
            project = Project(name=name)
            session.add(project)
        projects.append(project)
    return projects


def _seed_tags(session: Session) -> list[Tag]:
    existing = {tag.name: tag for tag in session.exec(select(Tag)).all()}
    tags: list[Tag] = []
    for name in DEFAULT_TAGS:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name)
            session.add(tag)
        tags.append(tag)
    return tags


def _seed_tasks(
    session: Session,
    *,
    users: list[User],
    projects: list[Project],
    tags: list[Tag],
) -> list[Task]:
    if session.exec(select(Task).limit(1)).first() is not None:
        return []

    now = utc_now()
    statuses = cycle(list(TaskStatus))
    priorities = cycle(list(TaskPriority))
    tasks: list[Task] = []
    for index in range(SAMPLE_TASK_COUNT):
        # Every third task stays unassigned and every other one has no due date.
        assignee = users[index % len(users)] if index % 3 else None
        task = Task(
            title=f"Task {index + 1}",
            description=f"Description for task {index + 1}",
            status=next(statuses),
            priority=next(priorities),
            project_id=projects[index % len(projects)].id,
            assignee_id=assignee.id if assignee is not None else None,
            due_date=now + timedelta(days=index + 1) if index % 2 == 0 else None,
        )
        session.add(task)
        session.flush()
        for tag in tags[: index % 3]:
            session.add(TaskTag(task_id=task.id, tag_id=tag.id))
        tasks.append(task)
    return tasks


def _seed_activities(session: Session, *, tasks: list[Task], users: list[User]) -> int:
    """Give each sample task the history the mutation service would have written.

    Tasks that are no longer ``TODO`` are recorded as created in ``TODO`` and
    then moved to their current status by a different user.
    """
    started_at = utc_now() - timedelta(days=1)
    written = 0
    for index, task in enumerate(tasks):
        creator = users[index % len(users)]
        initial: dict[str, Any] = {
            "title": task.title,
            "description": task.description,
            "status": TaskStatus.TODO,
            "priority": task.priority,
            "dueDate": task.due_date,
            "projectId": task.project_id,
            "assigneeId": task.assignee_id,
        }
        created: ChangeSet = {
            name: FieldChange(old=None, new=to_change_value(value))
            for name, value in initial.items()
            if value is not None
        }
        session.add(
            Activity(
                action=ActivityAction.CREATED,
                changes=changes_to_json(created),
                task_id=task.id,
                task_title=task.title,
                user_id=creator.id,
                created_at=started_at + timedelta(minutes=index),
            )
        )
        written += 1

        if task.status == TaskStatus.TODO:
            continue
        editor = users[(index + 1) % len(users)]
        updated: ChangeSet = {
            "status": FieldChange(old=TaskStatus.TODO.value, new=to_change_value(task.status))
        }
        session.add(
            Activity(
                action=ActivityAction.UPDATED,
                changes=changes_to_json(updated),
                task_id=task.id,
                task_title=task.title,
                user_id=editor.id,
                created_at=started_at + timedelta(hours=1, minutes=index),
            )
        )
        written += 1
    return written


def seed_initial_data(session: Session, *, with_tasks: bool = True) -> None:
    """Insert the reference users, projects and tags plus sample tasks.

    Safe to run repeatedly: existing rows are matched by their natural keys and
    sample tasks, with their activity history, are only created when the task
    table is empty.
    """
    users = _seed_users(session)
    projects = _seed_projects(session)
    tags = _seed_tags(session)
    session.flush()

    tasks: list[Task] = []
    created_activities = 0
    if with_tasks:
        tasks = _seed_tasks(session, users=users, projects=projects, tags=tags)
        created_activities = _seed_activities(session, tasks=tasks, users=users)

    session.commit()
    logger.info(
        "db.seeded",
        users=len(users),
        projects=len(projects),
        tags=len(tags),
        tasks_created=len(tasks),
        activities_created=created_activities,
    )
