"""Shared base models for domain entities and their tables."""

from datetime import UTC, datetime

import sqlalchemy as sa
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Entity(BaseModel):
    """Base entity with a store-generated integer identifier.

    An ``id`` of ``0`` means the entity has not been persisted yet.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = PydanticField(default=0, description="Unique identifier for the entity")

    created_at: datetime | None = PydanticField(default=None)
    updated_at: datetime | None = PydanticField(default=None)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _timestamps_are_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class EntityTable(SQLModel, table=False):
    """Base persistence model with an auto-incrementing identifier."""

    id: int | None = Field(default=None, primary_key=True)

    created_at: datetime = Field(sa_type=sa.DateTime(timezone=True), nullable=False)
    updated_at: datetime = Field(sa_type=sa.DateTime(timezone=True), nullable=False)
