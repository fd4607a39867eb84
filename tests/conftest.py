"""
Pytest configuration for schema-drift.

Provides fixtures for:
- An in-memory fake store (unit tests, no database needed)
- Database connection management for integration tests
- Settings override for integration tests
"""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Iterable, Iterator, List, Optional, Sequence, Tuple

import psycopg
import pytest

from schema_drift.config import Settings
from schema_drift.domain.schema import ColumnInfo
from schema_drift.errors import QueryError

T1 = datetime(2022, 6, 14, 11, 36, 41, tzinfo=timezone.utc)

USERS_COLUMNS: Tuple[ColumnInfo, ...] = (
    ColumnInfo("id", "bigint", False, "nextval('users_id_seq'::regclass)"),
    ColumnInfo("full_name", "character varying", True, None),
    ColumnInfo("address", "character varying", True, None),
    ColumnInfo("created_at", "timestamp with time zone", False, "now()"),
    ColumnInfo("updated_at", "timestamp with time zone", False, "now()"),
)

SEED_ROW: Dict[str, Any] = {
    "id": 1,
    "full_name": "John Doe",
    "address": "Singapore",
    "created_at": T1,
    "updated_at": T1,
}

_ADD_COLUMN = re.compile(r"^ALTER TABLE (\S+) ADD COLUMN (\w+) (.+)$", re.IGNORECASE)
_DROP_COLUMN = re.compile(r"^ALTER TABLE (\S+) DROP COLUMN (\w+)$", re.IGNORECASE)
_SQL_TYPES = {"varchar": "character varying", "text": "text", "bigint": "bigint"}


class FakeTable:
    def __init__(self, columns: Iterable[ColumnInfo], rows: Iterable[Dict[str, Any]]) -> None:
        self.columns: List[ColumnInfo] = list(columns)
        self.rows: List[Dict[str, Any]] = [dict(row) for row in rows]

    @property
    def names(self) -> List[str]:
        return [column.name for column in self.columns]


class FakeDatabase:
    """
    Shared state behind every FakeStore session, like one server behind many
    app instances. Understands just enough DDL for the phone_number migration.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, FakeTable] = {}
        self.executed: List[Any] = []
        self.sessions: List["FakeStore"] = []

    def add_table(
        self, name: str, columns: Iterable[ColumnInfo], rows: Iterable[Dict[str, Any]] = ()
    ) -> FakeTable:
        self.tables[name] = FakeTable(columns, rows)
        return self.tables[name]

    @contextmanager
    def session(self) -> Generator["FakeStore", None, None]:
        store = FakeStore(self)
        self.sessions.append(store)
        try:
            yield store
        finally:
            store.close()


class FakeStore:
    """In-memory implementation of the Store interface."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.open_cursors = 0
        self.fetches = 0
        self.closed = False

    def _table(self, name: str) -> FakeTable:
        if name not in self.db.tables:
            raise QueryError(f'relation "{name}" does not exist')
        return self.db.tables[name]

    @contextmanager
    def fetch_rows(self, table: str) -> Generator[Iterator[Dict[str, Any]], None, None]:
        target = self._table(table)
        self.fetches += 1
        self.open_cursors += 1
        try:
            yield iter([{name: row.get(name) for name in target.names} for row in target.rows])
        finally:
            self.open_cursors -= 1

    def execute(self, statement: Any, params: Optional[Sequence[Any]] = None) -> None:
        self.db.executed.append(statement)
        text = str(statement).strip().rstrip(";")

        match = _ADD_COLUMN.match(text)
        if match:
            table, column, sql_type = match.groups()
            target = self._table(table)
            if column in target.names:
                raise QueryError(
                    f'column "{column}" of relation "{table}" already exists', statement=text
                )
            base_type = sql_type.split("(")[0].strip().lower()
            target.columns.append(ColumnInfo(column, _SQL_TYPES.get(base_type, base_type)))
            return

        match = _DROP_COLUMN.match(text)
        if match:
            table, column = match.groups()
            target = self._table(table)
            if column not in target.names:
                raise QueryError(
                    f'column "{column}" of relation "{table}" does not exist', statement=text
                )
            target.columns = [c for c in target.columns if c.name != column]
            for row in target.rows:
                row.pop(column, None)
            return

        raise QueryError(f'syntax error at or near "{text.split()[0]}"', statement=text)

    def columns(self, table: str) -> Tuple[ColumnInfo, ...]:
        return tuple(self._table(table).columns)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_db() -> FakeDatabase:
    """A fake server holding the freshly bootstrapped users table."""
    db = FakeDatabase()
    db.add_table("users", USERS_COLUMNS, [SEED_ROW])
    return db


@pytest.fixture
def fake_store(fake_db: FakeDatabase) -> FakeStore:
    return FakeStore(fake_db)


@pytest.fixture
def seed_row() -> Dict[str, Any]:
    return dict(SEED_ROW)


# Integration fixtures


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "auth"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False
