"""
Query session: full-table fetch mapped row by row onto a record type.

The session owns no connection of its own; the store is injected and stays
under the caller's control.
"""

from __future__ import annotations

from typing import Generic, List, Optional, Type, Union

from schema_drift.domain.models import UserRecord
from schema_drift.errors import SchemaDriftError
from schema_drift.infrastructure.store import Store
from schema_drift.mapping.mapper import MappingPolicy, RecordMapper, RecordT
from schema_drift.utils.logging import get_logger

log = get_logger(__name__)


class QuerySession(Generic[RecordT]):
    """
    Read every row of `table` as `record_type` instances.

    Parameters
    ----------
    store : Store
        Session the fetch runs on.
    table : str
        Table to scan.
    record_type : type
        Pydantic record shape the rows are mapped onto.
    """

    def __init__(
        self,
        store: Store,
        table: str = "users",
        record_type: Type[RecordT] = UserRecord,  # type: ignore[assignment]
    ) -> None:
        self.store = store
        self.table = table
        self.record_type = record_type

    def list_all(
        self, policy: Optional[Union[MappingPolicy, str]] = MappingPolicy.STRICT
    ) -> List[RecordT]:
        """
        Fetch all rows and map them in the order received.

        All or nothing: the first row that fails to map aborts the call and
        no partial list is returned. The fetch cursor is released on every
        exit path.

        Raises
        ------
        UnmappedColumnError
            STRICT mapping met a column the record type does not declare.
        TypeMismatchError
            A value could not be converted to its field's type.
        StoreError
            The fetch itself failed.
        """
        mapper = RecordMapper(self.record_type, policy)
        records: List[RecordT] = []
        try:
            with self.store.fetch_rows(self.table) as rows:
                for row in rows:
                    records.append(mapper.map_row(row))
        except SchemaDriftError as exc:
            log.warning(
                f"[QUERY FAILED] {self.table} as {self.record_type.__name__}",
                extra={
                    "table": self.table,
                    "policy": mapper.policy.value,
                    "record_type": self.record_type.__name__,
                    "error": str(exc),
                },
            )
            raise
        log.info(
            f"[QUERY] {self.table} as {self.record_type.__name__}",
            extra={
                "table": self.table,
                "policy": mapper.policy.value,
                "record_type": self.record_type.__name__,
                "rows": len(records),
            },
        )
        return records


__all__ = ["QuerySession"]
