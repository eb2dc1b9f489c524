"""Exception hierarchy for the error tracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for all error tracker errors."""


class ErrorReportValidationError(TrackerError, ValueError):
    """An incoming error report is malformed and was rejected."""


class StoreUnavailableError(TrackerError):
    """The error record store or alert history store could not be reached."""
