"""
schema-drift - strict vs lenient row mapping across a live schema migration.

Shows what happens to running application instances when an additive column
migration lands underneath them:

- A strict reader refuses rows carrying columns it does not declare and fails
  with `UnmappedColumnError` the moment the column appears.
- A lenient reader ignores unknown columns and keeps working.
- An upgraded reader declaring the new field works before and after.

The package is a small library (mapper, query session, migration step, schema
snapshot) plus a CLI that runs the scenario against PostgreSQL.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from schema_drift.config import Settings, get_settings
from schema_drift.domain.models import UserRecord, UserRecordV2
from schema_drift.domain.schema import ColumnInfo, SchemaSnapshot
from schema_drift.errors import (
    MappingError,
    MigrationError,
    QueryError,
    SchemaDriftError,
    StoreConnectionError,
    StoreError,
    TypeMismatchError,
    UnmappedColumnError,
)
from schema_drift.mapping.mapper import MappingPolicy, RecordMapper, RecordMapping, map_row
from schema_drift.migrations.step import MigrationStep, phone_number_migration
from schema_drift.query import QuerySession
from schema_drift.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records and schema
    "UserRecord",
    "UserRecordV2",
    "ColumnInfo",
    "SchemaSnapshot",
    # Mapping
    "MappingPolicy",
    "RecordMapper",
    "RecordMapping",
    "map_row",
    # Query and migration
    "QuerySession",
    "MigrationStep",
    "phone_number_migration",
    # Errors
    "SchemaDriftError",
    "MappingError",
    "UnmappedColumnError",
    "TypeMismatchError",
    "MigrationError",
    "StoreError",
    "StoreConnectionError",
    "QueryError",
    # Logging
    "configure_logging",
    "get_logger",
]
