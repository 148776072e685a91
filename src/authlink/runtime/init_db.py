"""Database initialization script."""

from src.authlink.core.services.database.db_manage import DbManageService
from src.authlink.core.services.database.db_session import DbSessionService


def init_db() -> None:
    """Create all database tables."""
    db = DbSessionService()
    db.connect()
    try:
        DbManageService(db.engine).create_all()
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
