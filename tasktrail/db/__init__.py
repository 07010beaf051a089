"""Database layer modules and public helpers."""

from tasktrail.db.enums import ActivityAction, TaskPriority, TaskStatus
from tasktrail.db.models import Activity, Project, Tag, Task, TaskTag, User
from tasktrail.db.session import get_session, unit_of_work

__all__ = [
    "Activity",
    "ActivityAction",
    "Project",
    "Tag",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TaskTag",
    "User",
    "get_session",
    "unit_of_work",
]
