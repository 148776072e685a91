"""Credential repository: read path of the identity store."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func
from sqlmodel import select

from src.authlink.core.errors import ENOTFOUND, AppError
from src.authlink.core.services.database.db_session import Transaction, format_limit_offset
from src.authlink.entities.core.credential.entity import Credential
from src.authlink.entities.core.credential.table import CredentialTable
from src.authlink.entities.core.user.entity import User
from src.authlink.entities.core.user.table import UserTable

_CREDENTIAL_COLUMNS = ", ".join(c.name for c in CredentialTable.__table__.columns)


@dataclass
class CredentialQuery:
    """Filter passed to :meth:`CredentialRepository.query`."""

    id: int | None = None
    user_id: int | None = None
    source: str | None = None
    source_id: str | None = None

    # Restrict to a subset of the results; page is 1-based.
    page: int = 1
    limit: int = 0


class CredentialRepository:
    """Data-access layer for OAuth credentials, scoped to one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self._tx = tx

    def get(self, credential_id: int) -> Credential:
        """Return a credential with its owning user attached.

        Raises:
            AppError: ``not_found`` if no credential has this id.
        """
        row = self._tx.exec(
            select(CredentialTable).where(CredentialTable.id == credential_id)
        ).first()
        if row is None:
            raise AppError(ENOTFOUND, "Credential not found.")
        credential = Credential.model_validate(row, from_attributes=True)

        user_row = self._tx.exec(
            select(UserTable).where(UserTable.id == credential.user_id)
        ).first()
        if user_row is not None:
            credential.user = User.model_validate(user_row, from_attributes=True)
        return credential

    def get_by_source_id(self, source: str, source_id: str) -> Credential:
        """Return the credential linked to a provider account.

        Raises:
            AppError: ``not_found`` if the provider account is not linked.
        """
        row = self._tx.exec(
            select(CredentialTable).where(
                (CredentialTable.source == source)
                & (CredentialTable.source_id == source_id)
            )
        ).first()
        if row is None:
            raise AppError(ENOTFOUND, "Credential not found.")
        return Credential.model_validate(row, from_attributes=True)

    def list_by_user_ids(self, user_ids: list[int]) -> list[Credential]:
        """Return the credentials owned by any of ``user_ids``, ordered by id."""
        if not user_ids:
            return []
        statement, params = self._tx.build_in_query(
            f"SELECT {_CREDENTIAL_COLUMNS} FROM credentials "
            "WHERE user_id IN :user_ids ORDER BY id",
            user_ids=user_ids,
        )
        statement = statement.columns(*CredentialTable.__table__.columns)
        rows = self._tx.execute(statement, params).mappings().all()
        return [Credential.model_validate(dict(row)) for row in rows]

    def query(self, query: CredentialQuery) -> tuple[list[Credential], int]:
        """Return matching credentials and the total match count before paging."""
        conditions = []
        if query.id is not None:
            conditions.append(CredentialTable.id == query.id)
        if query.user_id is not None:
            conditions.append(CredentialTable.user_id == query.user_id)
        if query.source is not None:
            conditions.append(CredentialTable.source == query.source)
        if query.source_id is not None:
            conditions.append(CredentialTable.source_id == query.source_id)

        total = self._tx.exec(
            select(func.count()).select_from(CredentialTable).where(*conditions)
        ).one()

        statement = select(CredentialTable).where(*conditions).order_by(CredentialTable.id)
        limit, offset = format_limit_offset(query.limit, query.page)
        if limit is not None:
            statement = statement.limit(limit)
        if offset is not None:
            statement = statement.offset(offset)

        credentials = [
            Credential.model_validate(row, from_attributes=True)
            for row in self._tx.exec(statement).all()
        ]
        return credentials, total
