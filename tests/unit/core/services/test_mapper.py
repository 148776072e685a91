"""Tests for the entity mapper using an in-memory SQLite database."""

from datetime import UTC, datetime

import pytest
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from src.authlink.core.errors import EINTERNAL, ENOTFOUND, AppError
from src.authlink.core.services.database.mapper import (
    Column,
    ColumnRole,
    register_schema,
    schema_for,
)
from src.authlink.entities import Credential, CredentialRepository, User, UserRepository


class Gadget(BaseModel):
    id: int = 0
    label: str = ""
    owner: str | None = None


class TestRegisterSchema:
    """Test validation of column descriptors."""

    def test_field_without_column_fails_fast(self):
        """Should reject a model field that declares no column."""
        with pytest.raises(AppError) as exc_info:
            register_schema(
                Gadget,
                Column("id", "id", ColumnRole.GENERATED_ID),
                Column("label", "label"),
            )

        assert exc_info.value.code == EINTERNAL
        assert "owner" in exc_info.value.message

    def test_persisted_field_requires_column_name(self):
        with pytest.raises(AppError) as exc_info:
            register_schema(
                Gadget,
                Column("id", "id", ColumnRole.GENERATED_ID),
                Column("label"),
                Column("owner", role=ColumnRole.TRANSIENT),
            )

        assert exc_info.value.code == EINTERNAL
        assert "label" in exc_info.value.message

    def test_unknown_field_is_rejected(self):
        with pytest.raises(AppError) as exc_info:
            register_schema(
                Gadget,
                Column("id", "id", ColumnRole.GENERATED_ID),
                Column("label", "label"),
                Column("owner", "owner"),
                Column("colour", "colour"),
            )

        assert exc_info.value.code == EINTERNAL

    def test_column_sets_by_role(self):
        """Should exclude generated and transient columns, and immutable ones on update."""
        schema = schema_for(Credential)

        insert_names = [c.name for c in schema.insert_columns]
        update_names = [c.name for c in schema.update_columns]

        assert "id" not in insert_names
        assert "user" not in insert_names and None not in insert_names
        assert insert_names[0] == "user_id"
        assert "created_at" in insert_names
        assert "user_id" not in update_names
        assert "created_at" not in update_names
        assert update_names == [
            "source",
            "source_id",
            "access_token",
            "refresh_token",
            "expiry",
            "updated_at",
        ]

    def test_unregistered_type(self):
        class Unmapped(BaseModel):
            id: int = 0

        with pytest.raises(AppError) as exc_info:
            schema_for(Unmapped())

        assert exc_info.value.code == EINTERNAL


class TestInsert:
    """Test INSERT synthesis."""

    def test_insert_sets_id_and_timestamps(self, db):
        """Should populate a non-zero id and both timestamps."""
        user = User(name="Jane", email="jane@example.com")

        with db.begin() as tx:
            tx.insert(user, "users")
            tx.commit()

        assert user.id > 0
        assert user.created_at is not None
        assert user.updated_at == user.created_at
        assert user.created_at == datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def test_insert_does_not_persist_transient_fields(self, db):
        """Should leave the credentials collection out of the users row."""
        user = User(name="Jane", email="jane@example.com")
        user.credentials = [Credential(source="github", source_id="1", access_token="t")]

        with db.begin() as tx:
            tx.insert(user, "users")
            tx.commit()

        with db.begin() as tx:
            stored = UserRepository(tx).get(user.id)

        assert stored.name == "Jane"
        assert stored.credentials == []

    def test_insert_round_trips_values(self, db):
        user = User(name="Jane", email="jane@example.com")
        expiry = datetime(2030, 6, 1, 8, 30, tzinfo=UTC)

        with db.begin() as tx:
            tx.insert(user, "users")
            credential = Credential(
                user_id=user.id,
                source="github",
                source_id="42",
                access_token="access",
                refresh_token="refresh",
                expiry=expiry,
            )
            tx.insert(credential, "credentials")
            tx.commit()

        with db.begin() as tx:
            stored = CredentialRepository(tx).get_by_source_id("github", "42")

        assert stored.id == credential.id
        assert stored.user_id == user.id
        assert stored.access_token == "access"
        assert stored.refresh_token == "refresh"
        assert stored.expiry == expiry
        assert stored.created_at == credential.created_at

    def test_unknown_table(self, db):
        with db.begin() as tx:
            with pytest.raises(AppError) as exc_info:
                tx.insert(User(name="Jane"), "people")

        assert exc_info.value.code == EINTERNAL

    def test_statement_failure_propagates(self, db):
        """Should surface store errors unchanged for the caller to classify."""
        with db.begin() as tx:
            tx.insert(User(name="Jane", email="jane@example.com"), "users")
            with pytest.raises(IntegrityError):
                tx.insert(User(name="Other Jane", email="jane@example.com"), "users")


class TestUpdate:
    """Test UPDATE synthesis."""

    def test_update_advances_updated_at_only(self, db, clock):
        """Should refresh updated_at and leave created_at untouched."""
        user = User(name="Jane", email="jane@example.com")
        with db.begin() as tx:
            tx.insert(user, "users")
            tx.commit()
        created_at = user.created_at

        clock.advance(minutes=5)
        user.name = "Jane Smith"
        with db.begin() as tx:
            tx.update(user, "users")
            tx.commit()

        assert user.created_at == created_at
        assert user.updated_at > created_at

        with db.begin() as tx:
            stored = UserRepository(tx).get(user.id)

        assert stored.name == "Jane Smith"
        assert stored.created_at == created_at
        assert stored.updated_at == user.updated_at

    def test_update_ignores_immutable_columns(self, db, clock):
        """Should never move a credential to another user."""
        with db.begin() as tx:
            owner = User(name="Owner", email="owner@example.com")
            other = User(name="Other", email="other@example.com")
            tx.insert(owner, "users")
            tx.insert(other, "users")
            credential = Credential(
                user_id=owner.id, source="github", source_id="7", access_token="a"
            )
            tx.insert(credential, "credentials")
            tx.commit()

        clock.advance(seconds=30)
        credential.user_id = other.id
        credential.access_token = "b"
        with db.begin() as tx:
            tx.update(credential, "credentials")
            tx.commit()

        with db.begin() as tx:
            stored = CredentialRepository(tx).get(credential.id)

        assert stored.user_id == owner.id
        assert stored.access_token == "b"

    def test_update_missing_row(self, db):
        with db.begin() as tx:
            with pytest.raises(AppError) as exc_info:
                tx.update(User(id=999999, name="Ghost"), "users")

        assert exc_info.value.code == ENOTFOUND
