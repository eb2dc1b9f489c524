"""Pure functions that compose alert messages from error events."""

from __future__ import annotations

from errortracker.core.types import AlertKind, AlertMessage, ErrorEvent


def _message_text(event: ErrorEvent) -> str:
    return event.message if event.message else "(no message)"


def format_critical_alert(event: ErrorEvent) -> AlertMessage:
    """Compose the notification for a single critical failure."""
    subject = f"CRITICAL ERROR: {event.application_name} - {event.api_name}"
    body = "\n".join([
        "CRITICAL ERROR ALERT",
        "",
        f"Application: {event.application_name}",
        f"API: {event.api_name}",
        f"Status Code: {event.status_code}",
        f"Severity: {event.severity.value}",
        f"Time: {event.timestamp.isoformat()}",
        f"Message: {_message_text(event)}",
        "",
        "This is a critical error that requires immediate attention.",
    ])
    return AlertMessage(kind=AlertKind.CRITICAL, subject=subject, body=body)


def format_high_frequency_alert(
    event: ErrorEvent,
    observed_count: int,
    threshold: int,
    window_minutes: int,
) -> AlertMessage:
    """Compose the notification for a burst of matching errors."""
    subject = f"HIGH FREQUENCY ERROR: {event.application_name} - {event.api_name}"
    body = "\n".join([
        "HIGH FREQUENCY ERROR ALERT",
        "",
        f"Application: {event.application_name}",
        f"API: {event.api_name}",
        f"Status Code: {event.status_code}",
        f"Severity: {event.severity.value}",
        f"Time Window: Last {window_minutes} minutes",
        f"Error Count: {observed_count} (threshold: {threshold})",
        "",
        "Most Recent Error:",
        f"Time: {event.timestamp.isoformat()}",
        f"Message: {_message_text(event)}",
        "",
        "This endpoint is experiencing a high volume of errors.",
    ])
    return AlertMessage(kind=AlertKind.HIGH_FREQUENCY, subject=subject, body=body)
