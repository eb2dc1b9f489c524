"""Alert delivery sinks."""

from errortracker.notify.channels import (
    LogSink,
    NotificationSink,
    SmtpSink,
    WebhookSink,
    create_sink,
    send_test_notification,
)

__all__ = [
    "LogSink",
    "NotificationSink",
    "SmtpSink",
    "WebhookSink",
    "create_sink",
    "send_test_notification",
]
