from __future__ import annotations

from tasktrail.core.config import ConfigurationError, Settings
from tasktrail.notifications.contracts import NotificationSender
from tasktrail.notifications.senders import LoggingNotificationSender, SmtpNotificationSender


def create_notification_sender(settings: Settings) -> NotificationSender:
    if settings.notification_transport == "smtp":
        if settings.smtp_host is None or settings.smtp_from is None:
            raise ConfigurationError("SMTP transport requires SMTP_HOST and SMTP_FROM.")
        return SmtpNotificationSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_addr=settings.smtp_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout_s=settings.smtp_timeout_s,
        )
    return LoggingNotificationSender()
