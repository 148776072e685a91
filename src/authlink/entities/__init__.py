"""Entities organized by business concept.

Each entity has its own package containing:
- entity.py: Domain model and its column descriptor
- table.py: Database persistence model
- repository.py: Data access layer

User and Credential reference each other, so both models are completed here
once both classes exist.
"""

from .core.user import User, UserQuery, UserRepository, UserTable
from .core.credential import (
    AUTH_SOURCE_GITHUB,
    Credential,
    CredentialQuery,
    CredentialRepository,
    CredentialTable,
)

Credential.model_rebuild(_types_namespace={"User": User})
User.model_rebuild(_types_namespace={"Credential": Credential})

__all__ = [
    "AUTH_SOURCE_GITHUB",
    "Credential",
    "CredentialQuery",
    "CredentialRepository",
    "CredentialTable",
    "User",
    "UserQuery",
    "UserRepository",
    "UserTable",
]
