"""
Supported field types for record mappings.

Each supported Python type carries the label used in error messages and the
zero value given to a required field that has no matching column. Raw values
are converted with pydantic's lax validation for that type, so driver values
and their text forms (`"42"`, `"2022-06-14T11:36:41Z"`, `"t"`) are accepted
the same way a model would accept them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import TypeAdapter

from schema_drift.domain.models import ZERO_TIME

# python type -> (label used in error messages, zero value)
FIELD_TYPES: Dict[type, Tuple[str, Any]] = {
    bool: ("boolean", False),
    int: ("integer", 0),
    float: ("float", 0.0),
    Decimal: ("decimal", Decimal(0)),
    str: ("text", ""),
    datetime: ("timestamp", ZERO_TIME),
}


def supported_type(python_type: type) -> Optional[type]:
    """Return the table entry `python_type` falls under, or None."""
    for candidate in python_type.__mro__:
        if candidate in FIELD_TYPES:
            return candidate
    return None


def converter_for(python_type: type) -> Callable[[Any], Any]:
    """
    Build the converter for one field type.

    The returned callable raises `pydantic.ValidationError` when the value
    cannot be converted.
    """
    return TypeAdapter(python_type).validate_python


__all__ = ["FIELD_TYPES", "converter_for", "supported_type"]
