"""Credential database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from src.authlink.entities._base import EntityTable


class CredentialTable(EntityTable, table=True):
    """Database persistence model for OAuth credentials.

    At most one row may exist per ``(source, source_id)``; the constraint is
    what makes concurrent reconciliation of the same login safe.
    """

    __tablename__ = "credentials"
    __table_args__ = (
        UniqueConstraint("source", "source_id", name="uq_credentials_source_source_id"),
    )

    user_id: int = Field(foreign_key="users.id", index=True, nullable=False)
    source: str = Field(sa_type=sa.String(64), nullable=False)
    source_id: str = Field(sa_type=sa.String(255), nullable=False)
    access_token: str = Field(nullable=False)
    refresh_token: str = Field(default="", nullable=False)
    expiry: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))
