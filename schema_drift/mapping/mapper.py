"""
Row-to-record mapping under a strictness policy.

A `RecordMapping` is built once per record type: a static table of
field name -> `FieldBinding` resolved from the model's declared fields. The
`RecordMapper` then applies one of two policies to every row:

- STRICT (default): any row column the record type does not declare is a hard
  error. A reader deployed before an additive migration breaks as soon as the
  migration lands.
- LENIENT: undeclared columns are ignored. The same reader keeps working.

In both modes columns are matched by exact, case-sensitive name, never by
position, and declared fields without a matching column keep their default.
"""

from __future__ import annotations

import enum
import types
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, FrozenSet, Generic, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from schema_drift.errors import TypeMismatchError, UnmappedColumnError
from schema_drift.mapping.converters import FIELD_TYPES, converter_for, supported_type

RecordT = TypeVar("RecordT", bound=BaseModel)


class MappingPolicy(str, enum.Enum):
    STRICT = "strict"
    LENIENT = "lenient"


@dataclass(frozen=True)
class FieldBinding:
    """How one declared field is filled from its column."""

    name: str
    expected: str
    converter: Callable[[Any], Any]
    nullable: bool
    required: bool
    zero: Any

    def convert(self, value: Any) -> Any:
        if value is None:
            if self.nullable:
                return None
            raise ValueError("NULL is not allowed")
        return self.converter(value)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Return (inner type, nullable) for `Optional[X]` / `X | None`."""
    origin = typing.get_origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", None):
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0], True
    return annotation, False


def _binding_for(name: str, annotation: Any, required: bool) -> FieldBinding:
    inner, nullable = _unwrap_optional(annotation)
    if not isinstance(inner, type):
        raise TypeError(f"Field '{name}' has unsupported type {annotation!r}")
    entry = supported_type(inner)
    if entry is None:
        raise TypeError(f"Field '{name}' has unsupported type {annotation!r}")
    label, zero = FIELD_TYPES[entry]
    return FieldBinding(
        name=name,
        expected=f"{label} or NULL" if nullable else label,
        converter=converter_for(inner),
        nullable=nullable,
        required=required,
        zero=None if nullable else zero,
    )


class RecordMapping(Generic[RecordT]):
    """Static field table for one record type."""

    def __init__(self, record_type: Type[RecordT], bindings: Mapping[str, FieldBinding]) -> None:
        self.record_type = record_type
        self.bindings: Dict[str, FieldBinding] = dict(bindings)

    @classmethod
    def for_model(cls, record_type: Type[RecordT]) -> "RecordMapping[RecordT]":
        """Return the (cached) mapping for a pydantic record type."""
        return _mapping_for(record_type)

    @property
    def type_name(self) -> str:
        return self.record_type.__name__

    @property
    def fields(self) -> FrozenSet[str]:
        return frozenset(self.bindings)

    def __contains__(self, column: object) -> bool:
        return column in self.bindings


@lru_cache(maxsize=None)
def _mapping_for(record_type: Type[BaseModel]) -> RecordMapping:
    bindings = {
        name: _binding_for(name, info.annotation, info.is_required())
        for name, info in record_type.model_fields.items()
    }
    return RecordMapping(record_type, bindings)


class RecordMapper(Generic[RecordT]):
    """
    Convert rows into `record_type` instances under `policy`.

    Mapping is a pure function of (row, declared fields, policy).
    """

    def __init__(
        self,
        record_type: Type[RecordT],
        policy: Union[MappingPolicy, str] = MappingPolicy.STRICT,
    ) -> None:
        self.record_type = record_type
        self.policy = coerce_policy(policy)
        self.mapping: RecordMapping[RecordT] = RecordMapping.for_model(record_type)

    @property
    def fields(self) -> FrozenSet[str]:
        return self.mapping.fields

    def map_row(self, row: Mapping[str, Any]) -> RecordT:
        """
        Map one row onto the record type.

        Raises
        ------
        UnmappedColumnError
            STRICT only: names the first row column (in row order) that the
            record type does not declare.
        TypeMismatchError
            A matched value cannot be converted or breaks a field constraint.
        """
        bindings = self.mapping.bindings
        type_name = self.mapping.type_name

        if self.policy is MappingPolicy.STRICT:
            for column in row:
                if column not in bindings:
                    raise UnmappedColumnError(column, type_name)

        values: Dict[str, Any] = {}
        for column, raw in row.items():
            binding = bindings.get(column)
            if binding is None:
                continue
            try:
                values[column] = binding.convert(raw)
            except ValidationError as exc:
                reason = exc.errors()[0]["msg"]
                raise TypeMismatchError(column, type_name, binding.expected, raw, reason) from exc
            except (TypeError, ValueError) as exc:
                raise TypeMismatchError(column, type_name, binding.expected, raw, str(exc)) from exc

        for name, binding in bindings.items():
            if name not in values and binding.required:
                values[name] = binding.zero

        try:
            return self.record_type.model_validate(values)
        except ValidationError as exc:
            error = exc.errors()[0]
            column = str(error["loc"][0]) if error["loc"] else "<record>"
            binding = bindings.get(column)
            raise TypeMismatchError(
                column,
                type_name,
                binding.expected if binding else "valid record",
                values.get(column),
                error["msg"],
            ) from exc


def map_row(
    row: Mapping[str, Any],
    record_type: Type[RecordT],
    policy: Union[MappingPolicy, str] = MappingPolicy.STRICT,
) -> RecordT:
    """Map a single row without keeping a mapper around."""
    return RecordMapper(record_type, policy).map_row(row)


def coerce_policy(value: Optional[Union[MappingPolicy, str]]) -> MappingPolicy:
    """Accept a policy, its string value, or None (meaning the STRICT default)."""
    if value is None:
        return MappingPolicy.STRICT
    try:
        return MappingPolicy(value)
    except ValueError:
        allowed = ", ".join(policy.value for policy in MappingPolicy)
        raise ValueError(f"Unknown mapping policy '{value}'. Available: {allowed}") from None


__all__ = [
    "FieldBinding",
    "MappingPolicy",
    "RecordMapper",
    "RecordMapping",
    "coerce_policy",
    "map_row",
]
