"""
Domain package for schema-drift.

Exports the record shapes and the schema snapshot. Keep this package focused
on data definitions; store I/O lives in `schema_drift.infrastructure`.
"""

from schema_drift.domain.models import ZERO_TIME, UserRecord, UserRecordV2
from schema_drift.domain.schema import DOWN, UP, ColumnInfo, SchemaSnapshot

__all__ = [
    "ColumnInfo",
    "SchemaSnapshot",
    "UP",
    "DOWN",
    "UserRecord",
    "UserRecordV2",
    "ZERO_TIME",
]
