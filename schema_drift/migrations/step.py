"""
Migration step: one forward statement and its exact inverse.

There is no versioning or chaining. A step runs a single statement inside one
store transaction; if the store rejects it nothing changes and the store's
message is surfaced verbatim in a `MigrationError`. Steps are never retried.
"""

from __future__ import annotations

from typing import Optional

from schema_drift.domain.schema import DOWN, UP
from schema_drift.errors import MigrationError, StoreError
from schema_drift.infrastructure.store import Statement, Store, validate_table_name
from schema_drift.utils.logging import get_logger

log = get_logger(__name__)

PHONE_NUMBER_STEP = "add_phone_number"


class MigrationStep:
    """
    A named up/down statement pair bound to one store session.

    Running `down()` without a prior `up()` (or `up()` twice) is left to the
    store; with PostgreSQL both surface as `MigrationError`.
    """

    def __init__(self, store: Store, name: str, up_sql: Statement, down_sql: Statement) -> None:
        self.store = store
        self.name = name
        self.up_sql = up_sql
        self.down_sql = down_sql

    def up(self) -> None:
        """Apply the forward statement."""
        self._run(UP, self.up_sql)

    def down(self) -> None:
        """Apply the inverse statement."""
        self._run(DOWN, self.down_sql)

    def _run(self, direction: str, statement: Statement) -> None:
        tag = f"[MIGRATION {direction.upper()}] {self.name}"
        log.info(tag, extra={"step": self.name, "direction": direction})
        try:
            self.store.execute(statement)
        except StoreError as exc:
            log.error(
                f"{tag} failed",
                extra={"step": self.name, "direction": direction, "error": str(exc)},
            )
            raise MigrationError(self.name, direction, str(exc)) from exc
        log.info(f"{tag} applied", extra={"step": self.name, "direction": direction})

    def __repr__(self) -> str:
        return f"MigrationStep(name={self.name!r})"


def phone_number_migration(store: Store, table: Optional[str] = None) -> MigrationStep:
    """
    The additive migration this harness is about: `phone_number VARCHAR(127)`.

    Old readers that map strictly break as soon as `up()` lands.
    """
    name = validate_table_name(table or "users")
    return MigrationStep(
        store,
        name=PHONE_NUMBER_STEP,
        up_sql=f"ALTER TABLE {name} ADD COLUMN phone_number VARCHAR(127)",
        down_sql=f"ALTER TABLE {name} DROP COLUMN phone_number",
    )


__all__ = ["MigrationStep", "PHONE_NUMBER_STEP", "phone_number_migration"]
