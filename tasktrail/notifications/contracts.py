from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class AssignmentNotification:
    destination: str
    task_title: str

    @property
    def subject(self) -> str:
        return f"New Task Assigned: {self.task_title}"

    @property
    def body(self) -> str:
        return (
            "You have been assigned a new task.\n\n"
            f"Task: {self.task_title}\n"
        )


class NotificationSender(Protocol):
    transport: str

    def send(self, notification: AssignmentNotification) -> None: ...
