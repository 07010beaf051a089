"""Post-commit, fire-and-forget delivery of assignment notifications.

``notify_assignment`` only schedules work: delivery happens on a worker thread,
the caller never waits for it, and transport failures end in the log.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Protocol

from tasktrail.core.errors import DownstreamUnavailableError
from tasktrail.core.logging import get_logger
from tasktrail.notifications.contracts import AssignmentNotification, NotificationSender

logger = get_logger("tasktrail.notifications.dispatcher")


class AssignmentNotifier(Protocol):
    def notify_assignment(self, assignee_email: str, task_title: str) -> None: ...


class NotificationDispatcher:
    def __init__(self, sender: NotificationSender, *, max_workers: int = 2) -> None:
        self._sender = sender
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="tasktrail-notify",
        )
        self._lock = Lock()
        self._pending: set[Future[None]] = set()
        self._closed = False

    def notify_assignment(self, assignee_email: str, task_title: str) -> None:
        notification = AssignmentNotification(destination=assignee_email, task_title=task_title)
        with self._lock:
            if self._closed:
                logger.warning(
                    "notification.assignment.dropped",
                    reason="dispatcher_closed",
                    destination=assignee_email,
                )
                return
            future = self._executor.submit(self._deliver, notification)
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def wait_idle(self, timeout: float | None = None) -> None:
        """Block until every scheduled delivery finished. Used at shutdown and in tests."""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            future.exception(timeout=timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)

    def _deliver(self, notification: AssignmentNotification) -> None:
        try:
            self._sender.send(notification)
        except Exception as exc:
            error = DownstreamUnavailableError(
                transport=self._sender.transport,
                message=f"Failed to deliver assignment notification: {exc}",
                cause=exc,
            )
            logger.error(
                "notification.assignment.failed",
                transport=error.transport,
                destination=notification.destination,
                error=error.message,
                error_type=type(exc).__name__,
            )
            return
        logger.info(
            "notification.assignment.sent",
            transport=self._sender.transport,
            destination=notification.destination,
        )

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)
