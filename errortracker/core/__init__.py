"""Core module — config, types, logging."""

from errortracker.core.config import Settings, get_settings, load_settings, reset_settings
from errortracker.core.exceptions import (
    ErrorReportValidationError,
    StoreUnavailableError,
    TrackerError,
)
from errortracker.core.logging import setup_logging
from errortracker.core.severity import Severity, classify
from errortracker.core.types import (
    AlertKind,
    AlertMessage,
    AlertRecord,
    AlertStatistics,
    DeliveryStatus,
    ErrorEvent,
    ErrorReport,
    EvaluationResult,
)

__all__ = [
    "AlertKind",
    "AlertMessage",
    "AlertRecord",
    "AlertStatistics",
    "DeliveryStatus",
    "ErrorEvent",
    "ErrorReport",
    "ErrorReportValidationError",
    "EvaluationResult",
    "Settings",
    "Severity",
    "StoreUnavailableError",
    "TrackerError",
    "classify",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
