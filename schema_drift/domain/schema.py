"""
Schema snapshot: the authoritative current column list of one table.

The snapshot is read from the store's catalog and only ever replaced as a
whole, after a migration step has succeeded. It is not versioned; only the
current state is observable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from schema_drift.utils.logging import get_logger

if TYPE_CHECKING:
    from schema_drift.infrastructure.store import Store
    from schema_drift.migrations.step import MigrationStep

log = get_logger(__name__)

UP = "up"
DOWN = "down"


@dataclass(frozen=True)
class ColumnInfo:
    """One column as declared in the store catalog."""

    name: str
    data_type: str
    nullable: bool = True
    default: Optional[str] = None


class SchemaSnapshot:
    """
    Current columns of `table`, in ordinal order.

    No concurrency control is provided here: two processes migrating the
    same table race at the store, and each snapshot only reflects what its
    own store reported last.
    """

    def __init__(self, store: "Store", table: str, columns: Tuple[ColumnInfo, ...]) -> None:
        self._store = store
        self.table = table
        self._columns = tuple(columns)

    @classmethod
    def capture(cls, store: "Store", table: str) -> "SchemaSnapshot":
        """Read the current column list of `table` from the store."""
        return cls(store, table, store.columns(table))

    @property
    def columns(self) -> Tuple[ColumnInfo, ...]:
        return self._columns

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self._columns)

    def __contains__(self, name: object) -> bool:
        return name in self.column_names

    def __len__(self) -> int:
        return len(self._columns)

    def refresh(self) -> "SchemaSnapshot":
        self._columns = tuple(self._store.columns(self.table))
        return self

    def apply(self, step: "MigrationStep", direction: str = UP) -> "SchemaSnapshot":
        """
        Run one direction of `step` and replace the snapshot on success.

        Raises
        ------
        MigrationError
            If the store rejects the statement. The snapshot is left as it was.
        ValueError
            If `direction` is neither "up" nor "down".
        """
        if direction == UP:
            step.up()
        elif direction == DOWN:
            step.down()
        else:
            raise ValueError(f"Unknown migration direction '{direction}'. Use 'up' or 'down'.")

        before = self.column_names
        self.refresh()
        log.info(
            f"[SNAPSHOT] {self.table} after {step.name} ({direction})",
            extra={
                "table": self.table,
                "added": [name for name in self.column_names if name not in before],
                "dropped": [name for name in before if name not in self.column_names],
            },
        )
        return self

    def __repr__(self) -> str:
        return f"SchemaSnapshot(table={self.table!r}, columns={list(self.column_names)!r})"


__all__ = ["ColumnInfo", "SchemaSnapshot", "UP", "DOWN"]
