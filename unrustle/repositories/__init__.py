"""Repository layer for the login gateway."""

from .users import MemoryUserRepository, PostgresUserRepository, UserRepository

__all__ = [
    "MemoryUserRepository",
    "PostgresUserRepository",
    "UserRepository",
]
