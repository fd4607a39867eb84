"""
Error taxonomy for schema-drift.

Every error carries enough detail (column, record type, store message) to
diagnose a schema-drift incident from the message alone.
"""

from __future__ import annotations

from typing import Any, Optional


class SchemaDriftError(Exception):
    """Base class for all errors raised by this package."""


class MappingError(SchemaDriftError):
    """A row could not be mapped onto a record type."""

    def __init__(self, message: str, column: str, record_type: str) -> None:
        super().__init__(message)
        self.column = column
        self.record_type = record_type


class UnmappedColumnError(MappingError):
    """
    Strict mapping met a row column the record type does not declare.

    Recoverable by the caller: switch to lenient mapping or upgrade the
    record type.
    """

    def __init__(self, column: str, record_type: str) -> None:
        super().__init__(
            f"missing destination name {column} in {record_type}",
            column=column,
            record_type=record_type,
        )


class TypeMismatchError(MappingError):
    """A column value could not be converted to its field's type."""

    def __init__(
        self,
        column: str,
        record_type: str,
        expected: str,
        value: Any,
        reason: Optional[str] = None,
    ) -> None:
        message = (
            f"cannot convert column {column}={value!r} to {expected} "
            f"for {record_type}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, column=column, record_type=record_type)
        self.expected = expected
        self.value = value
        self.reason = reason


class MigrationError(SchemaDriftError):
    """A migration statement failed at the store; the schema is unchanged."""

    def __init__(self, step: str, direction: str, store_message: str) -> None:
        super().__init__(f"migration {step} ({direction}) failed: {store_message}")
        self.step = step
        self.direction = direction
        self.store_message = store_message


class StoreError(SchemaDriftError):
    """Base class for failures reported by the backing store."""


class StoreConnectionError(StoreError):
    """Connection setup or teardown failed."""


class QueryError(StoreError):
    """A statement failed at the store; message is the server's own."""

    def __init__(self, message: str, statement: Optional[str] = None) -> None:
        super().__init__(message)
        self.statement = statement


__all__ = [
    "SchemaDriftError",
    "MappingError",
    "UnmappedColumnError",
    "TypeMismatchError",
    "MigrationError",
    "StoreError",
    "StoreConnectionError",
    "QueryError",
]
