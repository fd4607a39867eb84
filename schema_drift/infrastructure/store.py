"""
PostgreSQL store boundary for schema-drift.

Wraps a psycopg connection behind the small `Store` interface the query
session, migration steps and schema snapshot use:

- `fetch_rows(table)`: scoped full-table fetch yielding dict rows in the
  column order the server returns.
- `execute(statement)`: one statement (or script) in its own transaction.
- `columns(table)`: the table's current columns from `information_schema`.

Sessions are explicitly owned objects passed to every operation; there is no
process-wide handle. `StorePool` hands out sessions backed by a psycopg pool
when several simulated app instances share one process.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import (
    Any,
    ContextManager,
    Dict,
    Generator,
    Iterator,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import psycopg
from psycopg import Connection, sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from schema_drift.config import Settings, get_settings
from schema_drift.domain.schema import ColumnInfo
from schema_drift.errors import QueryError, StoreConnectionError, StoreError
from schema_drift.utils.logging import get_logger

log = get_logger(__name__)

Row = Dict[str, Any]
Statement = Union[str, sql.Composable]

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

_COLUMNS_SQL = """
    SELECT column_name, data_type, is_nullable, column_default
    FROM information_schema.columns
    WHERE table_schema = COALESCE(%s, current_schema())
      AND table_name = %s
    ORDER BY ordinal_position
"""


@runtime_checkable
class Store(Protocol):
    """
    Relational query interface consumed by the core.

    Implementations must release any cursor opened by `fetch_rows` when the
    context exits, whether the caller finished, failed, or the fetch failed.
    """

    def fetch_rows(self, table: str) -> ContextManager[Iterator[Row]]:
        ...

    def execute(self, statement: Statement, params: Optional[Sequence[Any]] = None) -> None:
        ...

    def columns(self, table: str) -> Tuple[ColumnInfo, ...]:
        ...

    def close(self) -> None:
        ...


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def validate_table_name(table: str) -> str:
    """Return `table` if it is a plain (optionally schema-qualified) identifier."""
    if not _TABLE_NAME.match(table):
        raise ValueError(f"Invalid table name '{table}'")
    return table


def _split_table(table: str) -> Tuple[Optional[str], str]:
    schema, _, name = table.rpartition(".")
    return (schema or None), name


def table_identifier(table: str) -> sql.Identifier:
    return sql.Identifier(*table.split("."))


def _translate(exc: psycopg.Error, statement: Optional[str] = None) -> StoreError:
    """Turn a driver error into this package's store error, keeping the server message."""
    message = exc.diag.message_primary or str(exc).strip()
    if isinstance(exc, psycopg.OperationalError) and exc.sqlstate is None:
        return StoreConnectionError(message)
    return QueryError(message, statement=statement)


class PostgresStore:
    """
    `Store` over one psycopg connection in autocommit mode.

    Each fetch runs as its own statement, so it sees the schema as of the
    moment the server executes it.
    """

    def __init__(self, conn: Connection, owns_connection: bool = True) -> None:
        self._conn = conn
        self._owns_connection = owns_connection

    @property
    def connection(self) -> Connection:
        return self._conn

    @contextmanager
    def fetch_rows(self, table: str) -> Generator[Iterator[Row], None, None]:
        """
        Full-table fetch. The cursor is closed when the block exits.

        Example
        -------
            with store.fetch_rows("users") as rows:
                for row in rows:
                    print(row["full_name"])
        """
        query = sql.SQL("SELECT * FROM {}").format(table_identifier(table))
        with self._conn.cursor(row_factory=dict_row) as cur:
            try:
                cur.execute(query)
            except psycopg.Error as exc:
                raise _translate(exc, f"SELECT * FROM {table}") from exc
            log.debug(f"[FETCH] {table}", extra={"table": table, "rows": cur.rowcount})
            yield iter(cur)

    def execute(self, statement: Statement, params: Optional[Sequence[Any]] = None) -> None:
        """
        Run `statement` inside a single transaction.

        Without params the statement may hold several `;`-separated commands.
        """
        text = statement if isinstance(statement, str) else statement.as_string(self._conn)
        try:
            with self._conn.transaction():
                self._conn.execute(statement, params)
        except psycopg.Error as exc:
            raise _translate(exc, text) from exc
        log.debug("[EXECUTE] statement applied", extra={"statement": text})

    def columns(self, table: str) -> Tuple[ColumnInfo, ...]:
        schema, name = _split_table(table)
        try:
            with self._conn.cursor() as cur:
                cur.execute(_COLUMNS_SQL, (schema, name))
                records = cur.fetchall()
        except psycopg.Error as exc:
            raise _translate(exc) from exc
        if not records:
            raise QueryError(f'relation "{table}" does not exist')
        return tuple(
            ColumnInfo(
                name=column_name,
                data_type=data_type,
                nullable=(is_nullable == "YES"),
                default=column_default,
            )
            for column_name, data_type, is_nullable, column_default in records
        )

    def close(self) -> None:
        """Close the connection if this store owns it."""
        if not self._owns_connection or self._conn.closed:
            return
        try:
            self._conn.close()
        except psycopg.Error as exc:
            raise StoreConnectionError(f"failed to close connection: {exc}") from exc

    def __enter__(self) -> "PostgresStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def _open_connection(dsn: str, connect_timeout: int) -> Connection:
    return psycopg.connect(dsn, autocommit=True, connect_timeout=connect_timeout)


def connect(dsn: Optional[str] = None, settings: Optional[Settings] = None) -> PostgresStore:
    """
    Open a dedicated store session with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors.

    Raises
    ------
    StoreConnectionError
        If the connection cannot be established after all attempts.
    """
    settings = settings or get_settings()
    target = dsn or build_dsn(settings)
    try:
        conn = _open_connection(target, settings.db_connect_timeout)
    except psycopg.Error as exc:
        raise StoreConnectionError(f"cannot connect to store: {exc}") from exc
    log.debug("[CONNECT] store session opened", extra={"host": settings.db_host})
    return PostgresStore(conn)


class StorePool:
    """
    Pool of store sessions, one per simulated application instance.

    Explicitly owned: create it, use `session()`, close it.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.min_size = settings.pool_min_size if min_size is None else min_size
        self.max_size = settings.pool_max_size if max_size is None else max_size
        self._pool = ConnectionPool(
            conninfo=dsn or build_dsn(settings),
            min_size=self.min_size,
            max_size=self.max_size,
            kwargs={"autocommit": True, "connect_timeout": settings.db_connect_timeout},
            open=False,
        )

    def open(self, timeout: float = 30.0) -> "StorePool":
        try:
            self._pool.open(wait=True, timeout=timeout)
        except PoolTimeout as exc:
            raise StoreConnectionError(f"pool could not reach the store: {exc}") from exc
        return self

    @contextmanager
    def session(self) -> Generator[PostgresStore, None, None]:
        """Borrow a connection for the duration of the block."""
        try:
            with self._pool.connection() as conn:
                yield PostgresStore(conn, owns_connection=False)
        except PoolTimeout as exc:
            raise StoreConnectionError(f"no pooled connection available: {exc}") from exc

    def close(self) -> None:
        self._pool.close()

    def __enter__(self) -> "StorePool":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "PostgresStore",
    "Row",
    "Store",
    "StorePool",
    "build_dsn",
    "table_identifier",
    "validate_table_name",
    "connect",
]
