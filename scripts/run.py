#!/usr/bin/env python3
"""Alerting service entrypoint — runs the scan, health-check and retention timers.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG

    # Send a test notification and exit
    python scripts/run.py --test-notification
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from errortracker.core.config import load_settings
from errortracker.core.logging import setup_logging
from errortracker.factory import create_tracker_stack
from errortracker.notify.channels import send_test_notification

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the scanner timers and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, settings=settings)

    stack = create_tracker_stack(settings)

    if args.test_notification:
        ok = await send_test_notification(stack.sink, settings.alerting.recipient)
        await stack.close()
        return 0 if ok else 1

    if not settings.scheduler.enabled:
        logger.error("scheduler_disabled")
        print(
            "Scheduler is disabled. Set scheduler.enabled: true in "
            "config/settings.yaml to run the alerting service.",
            file=sys.stderr,
        )
        await stack.close()
        return 1

    logger.info(
        "tracker_starting",
        notifier=settings.notifier.mode,
        database=settings.database.url,
        recipient=settings.alerting.recipient,
    )
    await stack.scanner.start()

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("tracker_shutting_down")
    last_scan = stack.scanner.last_scan
    await stack.close()

    logger.info(
        "tracker_stopped",
        last_scan_errors=last_scan.errors_scanned if last_scan else 0,
        last_scan_alerts=last_scan.alerts_sent if last_scan else 0,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the error tracker alerting service.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--test-notification",
        action="store_true",
        help="Send a test notification through the configured sink and exit",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
