from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TAG_NOT_FOUND = "TAG_NOT_FOUND"
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    NOTIFICATION_UNAVAILABLE = "NOTIFICATION_UNAVAILABLE"


class TaskTrailError(Exception):
    """Base class for domain errors raised below the HTTP layer."""

    def __init__(self, *, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class NotFoundError(TaskTrailError):
    def __init__(self, *, code: ErrorCode, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(code=code, message=f"{entity} with ID {entity_id} not found")


class ValidationFailedError(TaskTrailError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)


class ConflictError(TaskTrailError):
    def __init__(self, message: str = "Operation violates a database constraint.") -> None:
        super().__init__(code=ErrorCode.RESOURCE_CONFLICT, message=message)


class DownstreamUnavailableError(TaskTrailError):
    """Notification transport failure; logged at the dispatch site, never surfaced."""

    def __init__(self, *, transport: str, message: str, cause: Exception | None = None) -> None:
        self.transport = transport
        self.cause = cause
        super().__init__(code=ErrorCode.NOTIFICATION_UNAVAILABLE, message=message)


def task_not_found(task_id: str) -> NotFoundError:
    return NotFoundError(code=ErrorCode.TASK_NOT_FOUND, entity="Task", entity_id=task_id)
