"""
Domain models for schema-drift.

Record shapes aligned with `db/init.sql`. `UserRecord` is what the currently
deployed application knows about; `UserRecordV2` is the shape shipped together
with the `phone_number` migration. Every field carries a zero/default value so
a lenient mapper can leave fields without a matching column untouched.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class UserRecord(BaseModel):
    """
    Representation of a single row in the `users` table.

    `updated_at` may not precede `created_at`; the same rule is a CHECK
    constraint in `db/init.sql`.
    """

    id: int = Field(0, ge=0, description="Primary key (unsigned, immutable).")
    full_name: Optional[str] = Field(None, description="Display name.")
    address: Optional[str] = Field(None, description="Postal address.")
    created_at: datetime = Field(ZERO_TIME, description="Row creation timestamp.")
    updated_at: datetime = Field(ZERO_TIME, description="Row update timestamp.")

    @field_validator("updated_at")
    @classmethod
    def check_not_before_creation(cls, value: datetime, info: ValidationInfo) -> datetime:
        created_at = info.data.get("created_at")
        if created_at is None or (created_at.tzinfo is None) != (value.tzinfo is None):
            return value
        if value < created_at:
            raise ValueError("updated_at is earlier than created_at")
        return value

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }


class UserRecordV2(UserRecord):
    """
    `users` row as seen by the application version that added `phone_number`.
    """

    phone_number: Optional[str] = Field(None, description="Contact phone number.")


__all__ = ["UserRecord", "UserRecordV2", "ZERO_TIME"]
