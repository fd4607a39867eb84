"""
Infrastructure package for schema-drift.

Centralizes store connectivity (sessions, pooling, bootstrap). Keep this layer
focused on I/O and resource management, decoupled from mapping logic.
"""

from schema_drift.infrastructure.bootstrap import apply_schema_file, reset_users
from schema_drift.infrastructure.store import (
    PostgresStore,
    Store,
    StorePool,
    build_dsn,
    connect,
)

__all__ = [
    "PostgresStore",
    "Store",
    "StorePool",
    "apply_schema_file",
    "build_dsn",
    "connect",
    "reset_users",
]
