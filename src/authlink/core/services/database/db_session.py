"""Database engine, session factory and transaction context."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel
from sqlalchemy import StaticPool, bindparam, event, text
from sqlalchemy.engine import Engine, Result
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.elements import TextClause
from sqlmodel import Session, create_engine

from src.authlink.core.errors import EINTERNAL, AppError
from src.authlink.core.services.database.mapper import insert_entity, update_entity
from src.authlink.runtime.config.config_data import DatabaseConfig
from src.authlink.runtime.context import get_config


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


def format_limit_offset(limit: int, page: int) -> tuple[int | None, int | None]:
    """Return ``(limit, offset)`` for a 1-based page.

    Either value is ``None`` when the clause should be omitted.
    """
    if limit > 0 and page > 1:
        return limit, (page - 1) * limit
    if limit > 0:
        return limit, None
    return None, None


# SQLSTATE unique_violation.
_PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(err: IntegrityError) -> bool:
    """Whether ``err`` comes from a unique constraint, not a foreign key or NOT NULL."""
    pgcode = getattr(err.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode == _PG_UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(err.orig)


def _set_sqlite_pragma(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Enforce foreign keys on every new SQLite connection."""
    event.listen(engine, "connect", _set_sqlite_pragma)


class Transaction:
    """A single database transaction bound to one fixed timestamp.

    ``now`` is captured once when the transaction begins and reused for every
    mutation inside it. Nothing is committed implicitly: leaving the ``with``
    block without calling :meth:`commit` rolls the transaction back.
    """

    def __init__(
        self,
        session: Session,
        now: datetime,
        cancel_events: tuple[threading.Event, ...] = (),
    ) -> None:
        self.session = session
        self.now = now
        self._cancel_events = cancel_events
        self._done = False

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if not self._done:
                self.rollback()
        finally:
            self.session.close()

    @property
    def cancelled(self) -> bool:
        return any(event.is_set() for event in self._cancel_events)

    def _check_active(self) -> None:
        if self._done:
            raise AppError(EINTERNAL, "Transaction already finished.")
        if self.cancelled:
            logger.warning("Transaction cancelled; rolling back")
            self.rollback()
            raise AppError(EINTERNAL, "Transaction cancelled.")

    def execute(self, statement: Any, params: Mapping[str, Any] | None = None) -> Result:
        self._check_active()
        return self.session.execute(statement, params)

    def exec(self, statement: Any):
        self._check_active()
        return self.session.exec(statement)

    def insert(self, entity: BaseModel, table: str) -> None:
        insert_entity(self, entity, table)

    def update(self, entity: BaseModel, table: str) -> None:
        update_entity(self, entity, table)

    def build_in_query(self, query: str, **params: Any) -> tuple[TextClause, dict[str, Any]]:
        """Bind list-valued parameters of ``query`` as expanding ``IN`` lists.

        ``"... WHERE user_id IN :user_ids"`` with ``user_ids=[1, 2]`` renders
        as ``IN (?, ?)`` for the active dialect.
        """
        expanding = [
            bindparam(name, expanding=True)
            for name, value in params.items()
            if isinstance(value, list | tuple | set | frozenset)
        ]
        bound = {
            name: list(value) if isinstance(value, set | frozenset) else value
            for name, value in params.items()
        }
        return text(query).bindparams(*expanding), bound

    def commit(self) -> None:
        self._check_active()
        self.session.commit()
        self._done = True

    def rollback(self) -> None:
        if self._done:
            return
        self._done = True
        self.session.rollback()


class DbSessionService:
    """Owns the engine for the process lifetime and hands out transactions.

    ``connect()`` creates the engine; ``close()`` cancels every outstanding
    transaction and disposes the engine.
    """

    def __init__(
        self,
        db_config: DatabaseConfig | None = None,
        engine: Engine | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db_config = db_config or get_config().database
        self._engine = engine
        self._cancel_event = threading.Event()
        # Mockable clock; transactions truncate it to whole seconds.
        self.now = now

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise AppError(EINTERNAL, "Database is not connected.")
        return self._engine

    @property
    def closed(self) -> bool:
        return self._cancel_event.is_set()

    def connect(self) -> None:
        """Create the shared database engine."""
        if self._engine is not None:
            return

        db_config = self._db_config
        logger.info("Configuring database engine for backend: {}", db_config.backend)
        self._engine = create_engine(db_config.url, **self._get_engine_kwargs(db_config))
        if db_config.backend == "sqlite":
            enable_sqlite_foreign_keys(self._engine)

    def close(self) -> None:
        """Cancel outstanding transactions and release pooled connections."""
        self._cancel_event.set()
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")

    def _get_engine_kwargs(self, db_config: DatabaseConfig) -> dict[str, Any]:
        """Get backend-specific engine arguments."""
        engine_kwargs: dict[str, Any] = {
            "echo": db_config.echo,
            "pool_pre_ping": True,
        }

        if db_config.backend == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if db_config.is_memory:
                # Every session must see the same in-memory database.
                engine_kwargs["poolclass"] = StaticPool
            if get_config().app.environment == "production":
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider PostgreSQL for better performance and reliability."
                )
        else:
            engine_kwargs.update(
                {
                    "pool_size": db_config.pool_size,
                    "max_overflow": db_config.max_overflow,
                    "pool_timeout": db_config.pool_timeout,
                    "pool_recycle": db_config.pool_recycle,
                }
            )

        return engine_kwargs

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self.engine,
            expire_on_commit=False,
            autoflush=True,
        )

    def begin(self, cancel_event: threading.Event | None = None) -> Transaction:
        """Start a transaction with a fixed, second-precision UTC timestamp."""
        if self.closed:
            raise AppError(EINTERNAL, "Database is closed.")

        events = (self._cancel_event,)
        if cancel_event is not None:
            events += (cancel_event,)

        now = self.now().astimezone(UTC).replace(microsecond=0)
        return Transaction(self.get_session(), now, events)

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(
                "Database health check failed",
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            return False
