from __future__ import annotations

from threading import Event
from typing import Any

import pytest

from tasktrail.core.config import ConfigurationError, Settings
from tasktrail.notifications import (
    AssignmentNotification,
    LoggingNotificationSender,
    NotificationDispatcher,
    SmtpNotificationSender,
    create_notification_sender,
)


class RecordingSender:
    transport = "fake"

    def __init__(self) -> None:
        self.sent: list[AssignmentNotification] = []

    def send(self, notification: AssignmentNotification) -> None:
        self.sent.append(notification)


class FailingSender:
    transport = "fake"

    def __init__(self) -> None:
        self.attempts = 0

    def send(self, notification: AssignmentNotification) -> None:
        self.attempts += 1
        raise ConnectionRefusedError("smtp down")


class BlockingSender:
    transport = "fake"

    def __init__(self) -> None:
        self.release = Event()
        self.sent: list[str] = []

    def send(self, notification: AssignmentNotification) -> None:
        self.release.wait(timeout=5)
        self.sent.append(notification.destination)


def test_assignment_notification_message() -> None:
    notification = AssignmentNotification(destination="jane@example.com", task_title="Ship it")

    assert notification.subject == "New Task Assigned: Ship it"
    assert "Task: Ship it" in notification.body


def test_dispatcher_delivers_in_background() -> None:
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(sender, max_workers=1)

    dispatcher.notify_assignment("jane@example.com", "Ship it")
    dispatcher.wait_idle(timeout=5)
    dispatcher.shutdown()

    assert [item.destination for item in sender.sent] == ["jane@example.com"]
    assert sender.sent[0].task_title == "Ship it"


def test_dispatcher_does_not_block_caller() -> None:
    sender = BlockingSender()
    dispatcher = NotificationDispatcher(sender, max_workers=1)

    dispatcher.notify_assignment("jane@example.com", "Slow")
    assert sender.sent == []

    sender.release.set()
    dispatcher.shutdown(wait=True)
    assert sender.sent == ["jane@example.com"]


def test_dispatcher_swallows_transport_failures() -> None:
    sender = FailingSender()
    dispatcher = NotificationDispatcher(sender, max_workers=1)

    dispatcher.notify_assignment("jane@example.com", "Broken")
    dispatcher.wait_idle(timeout=5)
    dispatcher.notify_assignment("bob@example.com", "Still fine")
    dispatcher.shutdown()

    assert sender.attempts == 2


def test_dispatcher_drops_notifications_after_shutdown() -> None:
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(sender)
    dispatcher.shutdown()

    dispatcher.notify_assignment("jane@example.com", "Too late")

    assert sender.sent == []


def test_logging_sender_never_raises() -> None:
    LoggingNotificationSender().send(
        AssignmentNotification(destination="jane@example.com", task_title="Logged")
    )


def test_smtp_sender_builds_and_sends_message(monkeypatch: pytest.MonkeyPatch) -> None:
    sessions: list[FakeSmtp] = []

    class FakeSmtp:
        def __init__(self, *, host: str, port: int, timeout: float) -> None:
            self.host = host
            self.port = port
            self.timeout = timeout
            self.calls: list[str] = []
            self.messages: list[Any] = []
            sessions.append(self)

        def __enter__(self) -> FakeSmtp:
            return self

        def __exit__(self, *exc_info: object) -> None:
            self.calls.append("quit")

        def ehlo(self) -> None:
            self.calls.append("ehlo")

        def starttls(self) -> None:
            self.calls.append("starttls")

        def login(self, username: str, password: str) -> None:
            self.calls.append(f"login:{username}")

        def send_message(self, message: Any) -> None:
            self.messages.append(message)

    monkeypatch.setattr("tasktrail.notifications.senders.smtplib.SMTP", FakeSmtp)
    sender = SmtpNotificationSender(
        host="smtp.example.com",
        port=2525,
        from_addr="noreply@example.com",
        username="mailer",
        password="secret",
    )

    sender.send(AssignmentNotification(destination="jane@example.com", task_title="Mail me"))

    [smtp] = sessions
    assert (smtp.host, smtp.port) == ("smtp.example.com", 2525)
    assert smtp.calls == ["ehlo", "starttls", "ehlo", "login:mailer", "quit"]
    [message] = smtp.messages
    assert message["To"] == "jane@example.com"
    assert message["From"] == "noreply@example.com"
    assert message["Subject"] == "New Task Assigned: Mail me"


def test_factory_selects_transport() -> None:
    assert isinstance(create_notification_sender(Settings()), LoggingNotificationSender)

    smtp = create_notification_sender(
        Settings(
            notification_transport="smtp",
            smtp_host="smtp.example.com",
            smtp_from="noreply@example.com",
        )
    )
    assert isinstance(smtp, SmtpNotificationSender)

    with pytest.raises(ConfigurationError):
        create_notification_sender(Settings(notification_transport="smtp"))
