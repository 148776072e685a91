"""User domain entity."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator

from src.authlink.core.errors import EINVALID, AppError
from src.authlink.core.services.database.mapper import Column, ColumnRole, register_schema
from src.authlink.entities._base import Entity

if TYPE_CHECKING:
    from src.authlink.entities.core.credential.entity import Credential


class User(Entity):
    """User entity representing a person in the system.

    Users are normally created while reconciling an OAuth callback, but can
    also be created directly (administrative and test path).
    """

    name: str = Field(default="", description="User's preferred name")
    email: str | None = Field(default=None, description="User's email address")
    credentials: list[Credential] = Field(
        default_factory=list, description="Linked OAuth credentials"
    )

    @field_validator("email")
    @classmethod
    def _blank_email_is_none(cls, value: str | None) -> str | None:
        # Providers send "" when the user has no public email.
        if value is not None and not value.strip():
            return None
        return value

    def validate_fields(self) -> None:
        """Raise ``invalid`` if the user is missing required fields."""
        if not self.name:
            raise AppError(EINVALID, "User name required.")

    def avatar_url(self, size: int) -> str:
        """Return the first avatar URL offered by a linked credential."""
        for credential in self.credentials:
            if url := credential.avatar_url(size):
                return url
        return ""


USER_SCHEMA = register_schema(
    User,
    Column("id", "id", ColumnRole.GENERATED_ID),
    Column("name", "name"),
    Column("email", "email"),
    Column("created_at", "created_at", ColumnRole.IMMUTABLE),
    Column("updated_at", "updated_at"),
    Column("credentials", role=ColumnRole.TRANSIENT),
)
