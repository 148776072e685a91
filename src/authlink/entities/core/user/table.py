"""User database table model."""

from sqlmodel import Field

from src.authlink.entities._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    ``email`` is the natural key used to link a new provider login to an
    existing account, so it is unique.
    """

    __tablename__ = "users"

    name: str = Field(nullable=False)
    email: str | None = Field(default=None, unique=True)
