"""Credential entity module.

- Credential: Domain entity linking an OAuth provider account to a user
- CredentialTable: Database persistence model
- CredentialRepository: Data access layer
"""

from .entity import AUTH_SOURCE_GITHUB, Credential
from .table import CredentialTable
from .repository import CredentialQuery, CredentialRepository

__all__ = [
    "AUTH_SOURCE_GITHUB",
    "Credential",
    "CredentialTable",
    "CredentialRepository",
    "CredentialQuery",
]
