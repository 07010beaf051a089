from tasktrail.db.repositories.activity_repository import (
    ActivityEntry,
    ActivityFilters,
    ActivityRecord,
    ActivityRepository,
)
from tasktrail.db.repositories.common import Page, Pagination
from tasktrail.db.repositories.reference_repository import ReferenceRepository
from tasktrail.db.repositories.task_repository import (
    NewTask,
    TaskDetails,
    TaskFilters,
    TaskRepository,
)

__all__ = [
    "ActivityEntry",
    "ActivityFilters",
    "ActivityRecord",
    "ActivityRepository",
    "NewTask",
    "Page",
    "Pagination",
    "ReferenceRepository",
    "TaskDetails",
    "TaskFilters",
    "TaskRepository",
]
