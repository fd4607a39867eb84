"""
Utilities package for schema-drift.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package free of mapping and migration logic.
"""

from schema_drift.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
