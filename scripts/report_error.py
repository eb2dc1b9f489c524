#!/usr/bin/env python3
"""Ingest a single error report and evaluate it for alerts.

Usage::

    python scripts/report_error.py payment-service /api/pay 503 \
        --message "upstream timeout"

    # Client-supplied timestamp (ISO-8601); invalid values fall back to now
    python scripts/report_error.py user-service /api/login 401 \
        --timestamp 2026-02-04T10:30:00
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import structlog

from errortracker.core.config import load_settings
from errortracker.core.exceptions import ErrorReportValidationError, StoreUnavailableError
from errortracker.core.logging import setup_logging
from errortracker.factory import create_tracker_stack

logger = structlog.get_logger(__name__)


async def report(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, fmt="console", settings=settings)

    stack = create_tracker_stack(settings)
    try:
        event = await stack.service.log_error({
            "application_name": args.application,
            "api_name": args.api,
            "status_code": args.status_code,
            "message": args.message,
            "timestamp": args.timestamp,
        })
        await stack.service.wait_for_pending()
    except ErrorReportValidationError as exc:
        print(f"Invalid error report: {exc}", file=sys.stderr)
        return 2
    except StoreUnavailableError as exc:
        logger.error("report_store_unavailable", error=str(exc))
        return 1
    finally:
        await stack.close()

    print(json.dumps(event.model_dump(mode="json"), indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Report one application error.")
    parser.add_argument("application", help="Reporting application name")
    parser.add_argument("api", help="API endpoint or module name")
    parser.add_argument("status_code", type=int, help="HTTP status code (100-599)")
    parser.add_argument("--message", default=None, help="Error message")
    parser.add_argument("--timestamp", default=None, help="ISO-8601 time of the error")
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    parser.add_argument("--log-level", default=None, help="Log level override")
    args = parser.parse_args()

    sys.exit(asyncio.run(report(args)))


if __name__ == "__main__":
    main()
