"""User entity module.

- User: Domain entity
- UserTable: Database persistence model
- UserRepository: Data access layer
"""

from .entity import User
from .table import UserTable
from .repository import UserQuery, UserRepository

__all__ = ["User", "UserTable", "UserRepository", "UserQuery"]
