from __future__ import annotations

import smtplib
from email.message import EmailMessage

from tasktrail.core.logging import get_logger
from tasktrail.notifications.contracts import AssignmentNotification

logger = get_logger("tasktrail.notifications.senders")


class LoggingNotificationSender:
    """Writes notifications to the log instead of delivering them."""

    transport = "log"

    def send(self, notification: AssignmentNotification) -> None:
        logger.info(
            "notification.assignment.logged",
            destination=notification.destination,
            subject=notification.subject,
        )


class SmtpNotificationSender:
    transport = "smtp"

    def __init__(
        self,
        *,
        host: str,
        port: int,
        from_addr: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
        timeout_s: float = 15.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from_addr = from_addr
        self._username = username
        self._password = password
        self._starttls = starttls
        self._timeout_s = timeout_s

    def build_message(self, notification: AssignmentNotification) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = notification.subject
        message["From"] = self._from_addr
        message["To"] = notification.destination
        message.set_content(notification.body)
        return message

    def send(self, notification: AssignmentNotification) -> None:
        message = self.build_message(notification)
        with smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout_s) as smtp:
            smtp.ehlo()
            if self._starttls:
                smtp.starttls()
                smtp.ehlo()
            if self._username and self._password:
                smtp.login(self._username, self._password)
            smtp.send_message(message)
