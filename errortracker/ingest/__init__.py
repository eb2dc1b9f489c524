"""Error report ingestion."""

from errortracker.ingest.service import ErrorLogService

__all__ = ["ErrorLogService"]
