from tasktrail.orchestration.task_mutations import (
    UNSET,
    DeletedTask,
    MutationState,
    TaskChanges,
    TaskMutationService,
    Unset,
)

__all__ = [
    "DeletedTask",
    "MutationState",
    "TaskChanges",
    "TaskMutationService",
    "UNSET",
    "Unset",
]
