"""
Bootstrap helpers: create the `users` table and (re)seed its fixture row.

The schema file is consumed only here; nothing else reads or writes it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from psycopg import sql

from schema_drift.config import get_settings
from schema_drift.infrastructure.store import Store, table_identifier
from schema_drift.utils.logging import get_logger

log = get_logger(__name__)

SEED_FULL_NAME = "John Doe"
SEED_ADDRESS = "Singapore"


def apply_schema_file(store: Store, path: Optional[Path] = None) -> Path:
    """
    Execute the declarative schema file against the store.

    Returns the path that was applied.
    """
    schema_path = Path(path or get_settings().schema_file)
    script = schema_path.read_text(encoding="utf-8")
    store.execute(script)
    log.info(f"[BOOTSTRAP] applied {schema_path.name}", extra={"path": str(schema_path)})
    return schema_path


def reset_users(store: Store, table: str = "users") -> None:
    """Empty `table` and insert the single seed row."""
    identifier = table_identifier(table)
    store.execute(sql.SQL("TRUNCATE TABLE {} RESTART IDENTITY").format(identifier))
    store.execute(
        sql.SQL("INSERT INTO {} (full_name, address) VALUES (%s, %s)").format(identifier),
        (SEED_FULL_NAME, SEED_ADDRESS),
    )
    log.info(f"[BOOTSTRAP] reseeded {table}", extra={"table": table})


__all__ = ["SEED_ADDRESS", "SEED_FULL_NAME", "apply_schema_file", "reset_users"]
