# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and tenant scoping.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseEntity(BaseModel):
    """Base entity for every record owned by an SPPG."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
        validate_assignment=True,
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    sppg_id: str = Field(..., description="Owning SPPG (tenant) identifier")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")
    deleted_at: Optional[datetime] = Field(None, description="Soft delete timestamp")
    created_by: Optional[str] = Field(None, description="User ID who created this entity")
    updated_by: Optional[str] = Field(None, description="User ID who last updated this entity")
    schema_version: int = Field(default=1, description="Schema version for migrations")

    def update_timestamp(self, updated_by: str) -> None:
        """Update the timestamp and updated_by fields."""
        self.updated_at = utcnow()
        self.updated_by = updated_by


class BaseEntityCreate(BaseModel):
    """Base model for entity creation requests."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_default=True,
        validate_assignment=True,
        str_strip_whitespace=True
    )
