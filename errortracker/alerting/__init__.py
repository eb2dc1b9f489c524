"""Alert decision, dispatch and periodic scanning."""

from errortracker.alerting.engine import AlertDecisionEngine
from errortracker.alerting.formatters import (
    format_critical_alert,
    format_high_frequency_alert,
)
from errortracker.alerting.reporting import alert_statistics, recent_alerts
from errortracker.alerting.scanner import AlertScanner

__all__ = [
    "AlertDecisionEngine",
    "AlertScanner",
    "alert_statistics",
    "format_critical_alert",
    "format_high_frequency_alert",
    "recent_alerts",
]
