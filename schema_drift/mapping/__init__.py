"""
Mapping package for schema-drift.

Re-exports the strictness policy, the per-type mapping table and the mapper
so callers can import from `schema_drift.mapping` directly.
"""

from schema_drift.mapping.mapper import (
    FieldBinding,
    MappingPolicy,
    RecordMapper,
    RecordMapping,
    coerce_policy,
    map_row,
)

__all__ = [
    "FieldBinding",
    "MappingPolicy",
    "RecordMapper",
    "RecordMapping",
    "coerce_policy",
    "map_row",
]
