"""FastAPI dependency implementations."""

from fastapi import Request

from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.core.services.user.user_service import UserService


def get_db_service(request: Request) -> DbSessionService:
    """Get the database session service instance."""
    return request.app.state.db


def get_user_service(request: Request) -> UserService:
    """Get a user service bound to the application database."""
    return UserService(get_db_service(request))
