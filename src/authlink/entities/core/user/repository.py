"""User repository: read path of the identity store."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func
from sqlmodel import select

from src.authlink.core.errors import ENOTFOUND, AppError
from src.authlink.core.services.database.db_session import Transaction, format_limit_offset
from src.authlink.entities.core.credential.repository import CredentialRepository
from src.authlink.entities.core.user.entity import User
from src.authlink.entities.core.user.table import UserTable


@dataclass
class UserQuery:
    """Filter passed to :meth:`UserRepository.query`."""

    id: int | None = None
    email: str | None = None

    # Restrict to a subset of the results; page is 1-based.
    page: int = 1
    limit: int = 0


class UserRepository:
    """Data-access layer for users, scoped to one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self._tx = tx

    def get(self, user_id: int) -> User:
        """Return the user with its credentials attached.

        Raises:
            AppError: ``not_found`` if no user has this id.
        """
        row = self._tx.exec(select(UserTable).where(UserTable.id == user_id)).first()
        if row is None:
            raise AppError(ENOTFOUND, "User not found.")
        user = User.model_validate(row, from_attributes=True)
        self.attach_credentials(user)
        return user

    def get_by_email(self, email: str) -> User:
        """Return the user with exactly this email, credentials attached."""
        row = self._tx.exec(select(UserTable).where(UserTable.email == email)).first()
        if row is None:
            raise AppError(ENOTFOUND, "User not found.")
        user = User.model_validate(row, from_attributes=True)
        self.attach_credentials(user)
        return user

    def attach_credentials(self, user: User) -> None:
        """Load every credential owned by ``user`` onto ``user.credentials``."""
        user.credentials = CredentialRepository(self._tx).list_by_user_ids([user.id])

    def query(self, query: UserQuery) -> tuple[list[User], int]:
        """Return matching users and the total match count before paging."""
        conditions = []
        if query.id is not None:
            conditions.append(UserTable.id == query.id)
        if query.email is not None:
            conditions.append(UserTable.email == query.email)

        total = self._tx.exec(
            select(func.count()).select_from(UserTable).where(*conditions)
        ).one()

        statement = select(UserTable).where(*conditions).order_by(UserTable.id)
        limit, offset = format_limit_offset(query.limit, query.page)
        if limit is not None:
            statement = statement.limit(limit)
        if offset is not None:
            statement = statement.offset(offset)

        users = [
            User.model_validate(row, from_attributes=True)
            for row in self._tx.exec(statement).all()
        ]

        # One IN query for all credentials instead of one query per user.
        by_user: dict[int, list] = {user.id: [] for user in users}
        if by_user:
            credentials = CredentialRepository(self._tx).list_by_user_ids(list(by_user))
            for credential in credentials:
                by_user[credential.user_id].append(credential)
        for user in users:
            user.credentials = by_user[user.id]

        return users, total
