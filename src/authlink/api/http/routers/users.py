"""User read endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from src.authlink.core.services.user.user_service import UserService
from src.authlink.api.http.deps import get_user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}")
def get_user(
    user_id: int, user_service: UserService = Depends(get_user_service)
) -> dict[str, Any]:
    """Return a user and its linked credentials (tokens are never exposed)."""
    user = user_service.get_user_by_id(user_id)
    body = user.model_dump(mode="json")
    body["avatar_url"] = user.avatar_url(64)
    return body
