"""Severity levels and the status-code classifier."""

from __future__ import annotations

from enum import StrEnum


class Severity(StrEnum):
    """Error severity derived from the HTTP status code."""

    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


def classify(status_code: int) -> Severity:
    """Map a status code to its severity.

    5xx and above are CRITICAL, 4xx are WARNING, anything lower is INFO.
    """
    if status_code >= 500:
        return Severity.CRITICAL
    if status_code >= 400:
        return Severity.WARNING
    return Severity.INFO
