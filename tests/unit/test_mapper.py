from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest
from pydantic import BaseModel

from schema_drift.domain.models import ZERO_TIME, UserRecord, UserRecordV2
from schema_drift.errors import TypeMismatchError, UnmappedColumnError
from schema_drift.mapping import MappingPolicy, RecordMapper, RecordMapping, coerce_policy, map_row

T1 = datetime(2022, 6, 14, 11, 36, 41, tzinfo=timezone.utc)

USER_ROW = {
    "id": 1,
    "full_name": "John Doe",
    "address": "Singapore",
    "created_at": T1,
    "updated_at": T1,
}


class _Account(BaseModel):
    """Record type with required fields and no defaults."""

    id: int
    balance: Decimal
    active: bool
    nickname: Optional[str]


def test_strict_is_the_default_policy():
    assert RecordMapper(UserRecord).policy is MappingPolicy.STRICT
    assert coerce_policy(None) is MappingPolicy.STRICT


def test_coerce_policy_accepts_string_values():
    assert coerce_policy("lenient") is MappingPolicy.LENIENT
    with pytest.raises(ValueError, match="Unknown mapping policy 'loose'"):
        coerce_policy("loose")


def test_mapping_is_built_once_per_record_type():
    assert RecordMapping.for_model(UserRecord) is RecordMapping.for_model(UserRecord)
    assert RecordMapping.for_model(UserRecord).fields == frozenset(USER_ROW)
    assert "phone_number" in RecordMapping.for_model(UserRecordV2)


def test_binding_describes_nullability():
    bindings = RecordMapping.for_model(UserRecord).bindings
    assert bindings["full_name"].nullable is True
    assert bindings["full_name"].expected == "text or NULL"
    assert bindings["created_at"].nullable is False
    assert bindings["created_at"].expected == "timestamp"


@pytest.mark.parametrize("policy", [MappingPolicy.STRICT, MappingPolicy.LENIENT])
def test_known_columns_map_identically_under_both_policies(policy):
    record = map_row(USER_ROW, UserRecord, policy)

    assert record == UserRecord(**USER_ROW)
    assert record.full_name == "John Doe"
    assert record.address == "Singapore"


def test_strict_and_lenient_agree_when_row_is_subset_of_fields():
    row = {"id": 7, "address": "Hanoi"}

    strict = map_row(row, UserRecord, MappingPolicy.STRICT)
    lenient = map_row(row, UserRecord, MappingPolicy.LENIENT)

    assert strict == lenient
    assert strict.full_name is None
    assert strict.created_at == ZERO_TIME


def test_strict_rejects_extra_column_naming_column_and_type():
    row = {**USER_ROW, "phone_number": None}

    with pytest.raises(UnmappedColumnError) as excinfo:
        map_row(row, UserRecord, MappingPolicy.STRICT)

    assert excinfo.value.column == "phone_number"
    assert excinfo.value.record_type == "UserRecord"
    assert str(excinfo.value) == "missing destination name phone_number in UserRecord"


def test_strict_names_first_unknown_column_in_row_order():
    row = {"zip_code": "018956", "id": 1, "phone_number": None}

    with pytest.raises(UnmappedColumnError) as excinfo:
        map_row(row, UserRecord)

    assert excinfo.value.column == "zip_code"


def test_strict_reports_unknown_column_before_bad_values():
    row = {"id": "not-a-number", "phone_number": "+65 6000 0000"}

    with pytest.raises(UnmappedColumnError):
        map_row(row, UserRecord, MappingPolicy.STRICT)


def test_lenient_ignores_extra_columns():
    row = {**USER_ROW, "phone_number": "+65 6000 0000", "nickname": "JD"}

    record = map_row(row, UserRecord, MappingPolicy.LENIENT)

    assert record == UserRecord(**USER_ROW)
    assert not hasattr(record, "phone_number")


def test_upgraded_record_maps_new_column_strictly():
    row = {**USER_ROW, "phone_number": "+65 6000 0000"}

    record = map_row(row, UserRecordV2, MappingPolicy.STRICT)

    assert record.phone_number == "+65 6000 0000"
    assert record.full_name == "John Doe"


def test_upgraded_record_reads_old_schema_with_default_phone_number():
    record = map_row(USER_ROW, UserRecordV2, MappingPolicy.STRICT)

    assert record.phone_number is None


def test_matching_is_by_name_not_position():
    shuffled = {
        "updated_at": T1,
        "address": "Singapore",
        "id": 1,
        "created_at": T1,
        "full_name": "John Doe",
    }

    assert map_row(shuffled, UserRecord) == map_row(USER_ROW, UserRecord)


def test_matching_is_case_sensitive():
    row = {"ID": 1}

    with pytest.raises(UnmappedColumnError) as excinfo:
        map_row(row, UserRecord, MappingPolicy.STRICT)
    assert excinfo.value.column == "ID"

    lenient = map_row(row, UserRecord, MappingPolicy.LENIENT)
    assert lenient.id == 0


@pytest.mark.parametrize("policy", [MappingPolicy.STRICT, MappingPolicy.LENIENT])
def test_unconvertible_value_raises_type_mismatch(policy):
    row = {**USER_ROW, "created_at": "yesterday"}

    with pytest.raises(TypeMismatchError) as excinfo:
        map_row(row, UserRecord, policy)

    assert excinfo.value.column == "created_at"
    assert excinfo.value.record_type == "UserRecord"
    assert excinfo.value.expected == "timestamp"
    assert "created_at" in str(excinfo.value)


def test_null_in_non_nullable_field_is_type_mismatch():
    with pytest.raises(TypeMismatchError) as excinfo:
        map_row({**USER_ROW, "updated_at": None}, UserRecord)

    assert excinfo.value.column == "updated_at"
    assert excinfo.value.reason == "NULL is not allowed"


def test_negative_id_breaks_unsigned_constraint():
    with pytest.raises(TypeMismatchError) as excinfo:
        map_row({**USER_ROW, "id": -1}, UserRecord)

    assert excinfo.value.column == "id"


def test_fractional_id_is_type_mismatch():
    with pytest.raises(TypeMismatchError) as excinfo:
        map_row({**USER_ROW, "id": 1.5}, UserRecord)

    assert excinfo.value.column == "id"
    assert excinfo.value.expected == "integer"
    assert excinfo.value.reason


def test_integral_float_id_is_accepted():
    assert map_row({"id": 42.0}, UserRecord).id == 42


def test_utc_designator_in_timestamp_text_is_accepted():
    row = {
        "id": 1,
        "created_at": "2022-06-14T11:36:41Z",
        "updated_at": "2022-06-14T11:36:41Z",
    }

    for policy in MappingPolicy:
        record = map_row(row, UserRecord, policy)
        assert record.created_at == T1
        assert record.updated_at == T1


def test_text_values_are_converted():
    row = {
        "id": "42",
        "full_name": b"Jane Roe",
        "created_at": "2022-06-14T11:36:41+00:00",
        "updated_at": "2022-06-14T11:36:41+00:00",
    }

    record = map_row(row, UserRecord)

    assert record.id == 42
    assert record.full_name == "Jane Roe"
    assert record.created_at == T1


def test_required_fields_without_column_get_zero_values():
    record = map_row({"id": 3}, _Account, MappingPolicy.LENIENT)

    assert record.balance == Decimal(0)
    assert record.active is False
    assert record.nickname is None


def test_mapping_has_no_side_effects_on_row():
    row = {**USER_ROW, "phone_number": None}
    snapshot = dict(row)

    map_row(row, UserRecord, MappingPolicy.LENIENT)

    assert row == snapshot


def test_unsupported_field_type_is_rejected_at_registration():
    class _Blob(BaseModel):
        payload: dict

    with pytest.raises(TypeError, match="unsupported type"):
        RecordMapping.for_model(_Blob)


def test_update_before_creation_is_type_mismatch_on_updated_at():
    row = {**USER_ROW, "updated_at": datetime(2022, 6, 13, tzinfo=timezone.utc)}

    with pytest.raises(TypeMismatchError) as excinfo:
        map_row(row, UserRecord)

    assert excinfo.value.column == "updated_at"
    assert "earlier than created_at" in excinfo.value.reason


def test_upgraded_record_inherits_timestamp_ordering():
    row = {**USER_ROW, "created_at": T1, "updated_at": ZERO_TIME}

    with pytest.raises(TypeMismatchError):
        map_row(row, UserRecordV2, MappingPolicy.LENIENT)
