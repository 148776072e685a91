"""Entity mapper: turns typed entities into parameterized INSERT/UPDATE statements.

Each persisted entity type registers an explicit, ordered column descriptor
with :func:`register_schema`. Registration validates the descriptor against
the model's fields, so a field without column metadata fails at import time
instead of on first write.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from loguru import logger
from pydantic import BaseModel
from sqlmodel import SQLModel

from src.authlink.core.errors import EINTERNAL, ENOTFOUND, AppError, errorf

if TYPE_CHECKING:
    from src.authlink.core.services.database.db_session import Transaction


CREATED_AT_FIELD = "created_at"
UPDATED_AT_FIELD = "updated_at"


class ColumnRole(StrEnum):
    """How a field takes part in generated statements."""

    GENERATED_ID = "generated-id"
    IMMUTABLE = "immutable"
    NORMAL = "normal"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class Column:
    """Maps one entity field to a table column."""

    field: str
    name: str | None = None
    role: ColumnRole = ColumnRole.NORMAL


@dataclass(frozen=True)
class EntitySchema:
    """Validated column descriptor of an entity type."""

    model: type[BaseModel]
    columns: tuple[Column, ...]

    @property
    def id_column(self) -> Column:
        for column in self.columns:
            if column.role is ColumnRole.GENERATED_ID:
                return column
        raise errorf(
            EINTERNAL, "Entity '%s' has no generated id column.", self.model.__name__
        )

    @property
    def insert_columns(self) -> tuple[Column, ...]:
        return tuple(
            c
            for c in self.columns
            if c.role not in (ColumnRole.GENERATED_ID, ColumnRole.TRANSIENT)
        )

    @property
    def update_columns(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if c.role is ColumnRole.NORMAL)

    def values(self, entity: BaseModel, columns: tuple[Column, ...]) -> dict[str, Any]:
        return {c.name: getattr(entity, c.field) for c in columns}


_SCHEMAS: dict[type[BaseModel], EntitySchema] = {}


def register_schema(model: type[BaseModel], *columns: Column) -> EntitySchema:
    """Validate and register the column descriptor for ``model``.

    Raises:
        AppError: ``internal`` when a model field has no descriptor, a field is
            described twice, a descriptor names an unknown field, or a
            persisted field does not declare a column name.
    """
    described: dict[str, Column] = {}
    for column in columns:
        if column.field not in model.model_fields:
            raise errorf(
                EINTERNAL,
                "Column '%s' refers to unknown field '%s' on %s.",
                column.name,
                column.field,
                model.__name__,
            )
        if column.field in described:
            raise errorf(
                EINTERNAL,
                "Field '%s' on %s is described twice.",
                column.field,
                model.__name__,
            )
        if column.role is not ColumnRole.TRANSIENT and not column.name:
            raise errorf(
                EINTERNAL,
                "Field '%s' on %s does not declare a column name.",
                column.field,
                model.__name__,
            )
        described[column.field] = column

    for field_name in model.model_fields:
        if field_name not in described:
            raise errorf(
                EINTERNAL,
                "Field '%s' on %s does not declare a column.",
                field_name,
                model.__name__,
            )

    generated = [c for c in columns if c.role is ColumnRole.GENERATED_ID]
    if len(generated) > 1:
        raise errorf(
            EINTERNAL, "%s declares more than one generated id.", model.__name__
        )

    schema = EntitySchema(model=model, columns=tuple(columns))
    _SCHEMAS[model] = schema
    return schema


def schema_for(entity: BaseModel | type[BaseModel]) -> EntitySchema:
    """Return the registered schema of an entity or entity type."""
    model = entity if isinstance(entity, type) else type(entity)
    try:
        return _SCHEMAS[model]
    except KeyError:
        raise errorf(
            EINTERNAL, "No column schema registered for %s.", model.__name__
        ) from None


def _get_table(table: str) -> sa.Table:
    try:
        return SQLModel.metadata.tables[table]
    except KeyError:
        raise errorf(EINTERNAL, "Unknown table '%s'.", table) from None


def insert_entity(tx: Transaction, entity: BaseModel, table: str) -> None:
    """Insert ``entity`` into ``table`` and write the generated id back.

    Creation and update timestamps are stamped with the transaction's time.
    Statement failures propagate unchanged.
    """
    schema = schema_for(entity)
    sa_table = _get_table(table)
    id_column = schema.id_column

    if CREATED_AT_FIELD in schema.model.model_fields:
        setattr(entity, CREATED_AT_FIELD, tx.now)
    if UPDATED_AT_FIELD in schema.model.model_fields:
        setattr(entity, UPDATED_AT_FIELD, tx.now)

    values = schema.values(entity, schema.insert_columns)
    statement = (
        sa.insert(sa_table).values(**values).returning(sa_table.c[id_column.name])
    )
    new_id = tx.execute(statement).scalar_one()
    setattr(entity, id_column.field, new_id)
    logger.debug("Inserted {} row with id {}", table, new_id)


def update_entity(tx: Transaction, entity: BaseModel, table: str) -> None:
    """Update the row of ``entity`` keyed by its id.

    Generated, transient and immutable columns are left untouched.
    """
    schema = schema_for(entity)
    sa_table = _get_table(table)
    id_column = schema.id_column

    if UPDATED_AT_FIELD in schema.model.model_fields:
        setattr(entity, UPDATED_AT_FIELD, tx.now)

    entity_id = getattr(entity, id_column.field)
    values = schema.values(entity, schema.update_columns)
    statement = (
        sa.update(sa_table)
        .where(sa_table.c[id_column.name] == entity_id)
        .values(**values)
    )
    result = tx.execute(statement)
    if result.rowcount == 0:
        raise AppError(ENOTFOUND, f"No {table} row with id {entity_id}.")
    logger.debug("Updated {} row with id {}", table, entity_id)


__all__ = [
    "Column",
    "ColumnRole",
    "EntitySchema",
    "insert_entity",
    "register_schema",
    "schema_for",
    "update_entity",
]
