"""Error tracker — alert decision, deduplication and dispatch."""

__version__ = "0.1.0"
