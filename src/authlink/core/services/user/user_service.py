"""User service."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import IntegrityError

from src.authlink.core.errors import ECONFLICT, AppError, not_implemented, wrap_error
from src.authlink.core.services.database.db_session import DbSessionService, is_unique_violation
from src.authlink.core.services.logging_middleware import logged
from src.authlink.entities.core.user import User, UserQuery, UserRepository

USERS_TABLE = "users"


@dataclass
class UserUpdate:
    """Fields to change via :meth:`UserService.update_user`."""

    name: str | None = None
    email: str | None = None


class UserService:
    """Manages users. Users are usually created by credential reconciliation."""

    def __init__(self, db: DbSessionService) -> None:
        self._db = db

    @logged
    def get_user_by_id(
        self, user_id: int, cancel_event: threading.Event | None = None
    ) -> User:
        """Return a user with its credentials. ``not_found`` if absent."""
        with self._db.begin(cancel_event) as tx:
            return UserRepository(tx).get(user_id)

    @logged
    def query_users(
        self, query: UserQuery, cancel_event: threading.Event | None = None
    ) -> tuple[list[User], int]:
        """Return users matching ``query`` and the total match count."""
        with self._db.begin(cancel_event) as tx:
            return UserRepository(tx).query(query)

    @logged
    def create_user(self, user: User, cancel_event: threading.Event | None = None) -> None:
        """Create a user directly, bypassing reconciliation."""
        user.validate_fields()
        with self._db.begin(cancel_event) as tx:
            try:
                tx.insert(user, USERS_TABLE)
            except IntegrityError as exc:
                if not is_unique_violation(exc):
                    raise wrap_error("cannot create user", exc) from exc
                raise AppError(ECONFLICT, "A user with this email already exists.") from exc
            tx.commit()
        logger.info("Created user {}", user.id)

    @logged
    def update_user(
        self,
        user_id: int,
        update: UserUpdate,
        cancel_event: threading.Event | None = None,
    ) -> User:
        raise not_implemented("Updating users")

    @logged
    def delete_user(self, user_id: int, cancel_event: threading.Event | None = None) -> None:
        raise not_implemented("Deleting users")
