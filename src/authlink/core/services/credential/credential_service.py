"""Credential service: identity reconciliation for OAuth callbacks."""

from __future__ import annotations

import threading

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.authlink.core.errors import (
    ECONFLICT,
    ENOTFOUND,
    AppError,
    error_code,
    not_implemented,
    wrap_error,
)
from src.authlink.core.services.database.db_session import (
    DbSessionService,
    Transaction,
    is_unique_violation,
)
from src.authlink.core.services.logging_middleware import logged
from src.authlink.entities.core.credential import (
    Credential,
    CredentialQuery,
    CredentialRepository,
)
from src.authlink.entities.core.user import User, UserRepository

CREDENTIALS_TABLE = "credentials"
USERS_TABLE = "users"


class CredentialService:
    """Manages OAuth credentials and the users they link to."""

    def __init__(self, db: DbSessionService) -> None:
        self._db = db

    @logged
    def get_credential_by_id(
        self, credential_id: int, cancel_event: threading.Event | None = None
    ) -> Credential:
        """Return a credential with its owning user. ``not_found`` if absent."""
        with self._db.begin(cancel_event) as tx:
            return CredentialRepository(tx).get(credential_id)

    @logged
    def query_credentials(
        self, query: CredentialQuery, cancel_event: threading.Event | None = None
    ) -> tuple[list[Credential], int]:
        """Return credentials matching ``query`` and the total match count."""
        with self._db.begin(cancel_event) as tx:
            return CredentialRepository(tx).query(query)

    @logged
    def create_credential(
        self, credential: Credential, cancel_event: threading.Event | None = None
    ) -> None:
        """Reconcile an OAuth callback credential with the local identities.

        If the provider account is already linked, its tokens and expiry are
        refreshed. Otherwise the credential is linked to ``credential.user_id``
        or, when that is unset and a transient ``credential.user`` is attached,
        to the existing user with the same email, creating a new user when
        there is none.

        On success ``credential.id`` and ``credential.user_id`` are set. On
        failure nothing written by this call is committed.
        """
        credential.validate_fields(require_user=False)

        with self._db.begin(cancel_event) as tx:
            try:
                existing = CredentialRepository(tx).get_by_source_id(
                    credential.source, credential.source_id
                )
            except AppError as exc:
                if error_code(exc) != ENOTFOUND:
                    raise wrap_error("find credential by source id failed", exc) from exc
                existing = None
            except SQLAlchemyError as exc:
                raise wrap_error("find credential by source id failed", exc) from exc

            if existing is not None:
                self._refresh_credential(tx, existing, credential)
            else:
                self._resolve_user(tx, credential)
                credential.validate_fields()
                try:
                    tx.insert(credential, CREDENTIALS_TABLE)
                except IntegrityError as exc:
                    if not is_unique_violation(exc):
                        raise wrap_error("cannot create credential", exc) from exc
                    raise AppError(
                        ECONFLICT, "Credential is already linked to a user."
                    ) from exc
                logger.info(
                    "Linked {} credential {} to user {}",
                    credential.source,
                    credential.id,
                    credential.user_id,
                )

            tx.commit()

    def _refresh_credential(
        self, tx: Transaction, existing: Credential, incoming: Credential
    ) -> None:
        """Rotate the tokens of an already linked credential."""
        if incoming.user_id not in (0, existing.user_id):
            raise AppError(ECONFLICT, "Credential is linked to another user.")

        existing.access_token = incoming.access_token
        existing.refresh_token = incoming.refresh_token
        existing.expiry = incoming.expiry
        try:
            tx.update(existing, CREDENTIALS_TABLE)
        except SQLAlchemyError as exc:
            raise wrap_error("cannot refresh credential", exc) from exc

        incoming.id = existing.id
        incoming.user_id = existing.user_id
        incoming.created_at = existing.created_at
        incoming.updated_at = existing.updated_at
        logger.info(
            "Refreshed {} credential {} for user {}",
            existing.source,
            existing.id,
            existing.user_id,
        )

    def _resolve_user(self, tx: Transaction, credential: Credential) -> None:
        """Point ``credential.user_id`` at an existing or newly created user.

        A caller-supplied ``user_id`` must name a persisted user. Otherwise the
        attached transient user is resolved by email, the only link key; a
        user without an email always gets a new account.
        """
        if credential.user_id != 0:
            try:
                credential.user = UserRepository(tx).get(credential.user_id)
            except (AppError, SQLAlchemyError) as exc:
                raise wrap_error("find user by id failed", exc) from exc
            return
        if credential.user is None:
            return

        user: User | None = None
        if credential.user.email:
            try:
                user = UserRepository(tx).get_by_email(credential.user.email)
            except AppError as exc:
                if error_code(exc) != ENOTFOUND:
                    raise wrap_error("find user by email failed", exc) from exc
            except SQLAlchemyError as exc:
                raise wrap_error("find user by email failed", exc) from exc

        if user is not None:
            logger.info("Linking {} login to existing user {}", credential.source, user.id)
            credential.user = user
        else:
            new_user = credential.user
            if not new_user.email:
                new_user.email = None
            new_user.validate_fields()
            try:
                tx.insert(new_user, USERS_TABLE)
            except IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise wrap_error("cannot create user", exc) from exc
                raise AppError(ECONFLICT, "A user with this email already exists.") from exc
            except AppError as exc:
                raise wrap_error("cannot create user", exc) from exc
            logger.info("Provisioned user {} from {} login", new_user.id, credential.source)

        credential.user_id = credential.user.id

    @logged
    def delete_credential(
        self, credential_id: int, cancel_event: threading.Event | None = None
    ) -> None:
        raise not_implemented("Deleting credentials")
