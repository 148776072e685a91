from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, StaticPool
from sqlmodel import create_engine

from src.authlink.core.services.credential.credential_service import CredentialService
from src.authlink.core.services.database.db_manage import DbManageService
from src.authlink.core.services.database.db_session import (
    DbSessionService,
    enable_sqlite_foreign_keys,
)
from src.authlink.core.services.user.user_service import UserService
from src.authlink.runtime.config.config_data import DatabaseConfig

_START = datetime(2024, 1, 1, 12, 0, 0, 750000, tzinfo=UTC)


class FakeClock:
    """Deterministic, manually advanced replacement for ``utc_now``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(_START)


@pytest.fixture
def engine() -> Generator[Engine]:
    """Fresh in-memory database with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    DbManageService(engine).create_all()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def db(engine: Engine, clock: FakeClock) -> Generator[DbSessionService]:
    service = DbSessionService(DatabaseConfig(url="sqlite://"), engine=engine, now=clock)
    yield service
    service.close()


@pytest.fixture
def user_service(db: DbSessionService) -> UserService:
    return UserService(db)


@pytest.fixture
def credential_service(db: DbSessionService) -> CredentialService:
    return CredentialService(db)
