"""Credential domain entity."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import Field, field_validator

from src.authlink.core.errors import EINVALID, AppError
from src.authlink.core.services.database.mapper import Column, ColumnRole, register_schema
from src.authlink.entities._base import Entity, as_utc

if TYPE_CHECKING:
    from src.authlink.entities.core.user.entity import User

# Authentication providers. Any OAuth provider can be linked; GitHub is the
# only one with provider-specific behaviour.
AUTH_SOURCE_GITHUB = "github"


class Credential(Entity):
    """One OAuth provider linkage of a local user.

    ``(source, source_id)`` identifies the external account. ``user`` is an
    in-memory reference to the owning user and is never persisted.
    """

    user_id: int = Field(default=0, exclude=True, description="Owning user ID")
    user: User | None = Field(default=None, exclude=True)

    source: str = Field(description="Authentication provider name")
    source_id: str = Field(description="Provider-side subject identifier")

    access_token: str = Field(default="", exclude=True)
    refresh_token: str = Field(default="", exclude=True)
    expiry: datetime | None = Field(default=None, exclude=True)

    @field_validator("expiry")
    @classmethod
    def _expiry_is_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    def validate_fields(self, require_user: bool = True) -> None:
        """Raise ``invalid`` if any required field is missing."""
        if require_user and self.user_id == 0:
            raise AppError(EINVALID, "User required.")
        if not self.source:
            raise AppError(EINVALID, "Source required.")
        if not self.source_id:
            raise AppError(EINVALID, "Source ID required.")
        if not self.access_token:
            raise AppError(EINVALID, "Access token required.")

    def avatar_url(self, size: int) -> str:
        """Return the provider-hosted avatar URL, or "" if unsupported."""
        if self.source == AUTH_SOURCE_GITHUB:
            return f"https://avatars1.githubusercontent.com/u/{self.source_id}?s={size}"
        return ""


CREDENTIAL_SCHEMA = register_schema(
    Credential,
    Column("id", "id", ColumnRole.GENERATED_ID),
    Column("user_id", "user_id", ColumnRole.IMMUTABLE),
    Column("user", role=ColumnRole.TRANSIENT),
    Column("source", "source"),
    Column("source_id", "source_id"),
    Column("access_token", "access_token"),
    Column("refresh_token", "refresh_token"),
    Column("expiry", "expiry"),
    Column("created_at", "created_at", ColumnRole.IMMUTABLE),
    Column("updated_at", "updated_at"),
)
