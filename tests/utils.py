from datetime import UTC, datetime

from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.entities import (
    Credential,
    CredentialQuery,
    CredentialRepository,
    User,
    UserQuery,
    UserRepository,
)


def make_credential(
    source_id: str = "1001",
    email: str | None = "jane@example.com",
    name: str = "Jane Doe",
    access_token: str = "access-1",
    source: str = "github",
) -> Credential:
    """Credential as decoded from an OAuth callback, with a transient user."""
    return Credential(
        source=source,
        source_id=source_id,
        access_token=access_token,
        refresh_token="refresh-1",
        expiry=datetime(2030, 1, 1, tzinfo=UTC),
        user=User(name=name, email=email),
    )


def count_users(db: DbSessionService) -> int:
    with db.begin() as tx:
        return UserRepository(tx).query(UserQuery())[1]


def count_credentials(db: DbSessionService) -> int:
    with db.begin() as tx:
        return CredentialRepository(tx).query(CredentialQuery())[1]
