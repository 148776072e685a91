"""Tests for the User entity."""

from datetime import datetime

import pytest

from src.authlink.core.errors import EINVALID, AppError
from src.authlink.entities import Credential, User


class TestUser:
    def test_defaults(self):
        user = User()

        assert user.id == 0
        assert user.name == ""
        assert user.email is None
        assert user.credentials == []
        assert user.created_at is None

    def test_validate_requires_name(self):
        with pytest.raises(AppError) as exc_info:
            User(email="jane@example.com").validate_fields()

        assert exc_info.value.code == EINVALID
        assert exc_info.value.message == "User name required."

    @pytest.mark.parametrize("email", ["", "   "])
    def test_blank_email_is_none(self, email):
        """Should store no email rather than an empty one."""
        assert User(name="Jane", email=email).email is None

    def test_validate_accepts_missing_email(self):
        User(name="Jane").validate_fields()

    def test_naive_timestamps_are_utc(self):
        """Should treat timestamps read back without a zone as UTC."""
        user = User(name="Jane", created_at=datetime(2024, 1, 1, 12, 0))

        assert user.created_at.utcoffset().total_seconds() == 0

    def test_avatar_url_from_first_supporting_credential(self):
        user = User(
            name="Jane",
            credentials=[
                Credential(source="gitlab", source_id="9"),
                Credential(source="github", source_id="1001"),
            ],
        )

        assert user.avatar_url(64) == "https://avatars1.githubusercontent.com/u/1001?s=64"

    def test_avatar_url_without_credentials(self):
        assert User(name="Jane").avatar_url(64) == ""

    def test_serialization_hides_credential_secrets(self):
        user = User(
            id=1,
            name="Jane",
            email="jane@example.com",
            credentials=[
                Credential(
                    id=5,
                    user_id=1,
                    source="github",
                    source_id="1001",
                    access_token="secret-access",
                    refresh_token="secret-refresh",
                )
            ],
        )

        data = user.model_dump(mode="json")

        assert data["name"] == "Jane"
        assert data["credentials"][0]["source"] == "github"
        assert "access_token" not in data["credentials"][0]
        assert "refresh_token" not in data["credentials"][0]
        assert "user_id" not in data["credentials"][0]
        assert "secret-access" not in user.model_dump_json()
