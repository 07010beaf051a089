from tasktrail.notifications.contracts import AssignmentNotification, NotificationSender
from tasktrail.notifications.dispatcher import AssignmentNotifier, NotificationDispatcher
from tasktrail.notifications.factory import create_notification_sender
from tasktrail.notifications.senders import LoggingNotificationSender, SmtpNotificationSender

__all__ = [
    "AssignmentNotification",
    "AssignmentNotifier",
    "LoggingNotificationSender",
    "NotificationDispatcher",
    "NotificationSender",
    "SmtpNotificationSender",
    "create_notification_sender",
]
