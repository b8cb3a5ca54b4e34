"""Repository for the users table.

Two backends share one interface:

- ``PostgresUserRepository`` stores users in PostgreSQL through an asyncpg
  pool. The (name, service) UNIQUE constraint settles concurrent first logins.
- ``MemoryUserRepository`` keeps users in process, for development setups
  without a database URL and for tests.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime

import asyncpg

from unrustle.core.exceptions import UserStoreError
from unrustle.models import ExternalProfile, User

logger = logging.getLogger(__name__)

_USER_COLUMNS = (
    "id, service, name, display_name, email, provider_user_id, created_at, updated_at"
)

USERS_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id               UUID PRIMARY KEY,
    service          TEXT NOT NULL,
    name             TEXT NOT NULL,
    display_name     TEXT,
    email            TEXT,
    provider_user_id TEXT,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (name, service)
)
"""

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


def parse_user_id(user_id: str) -> str | None:
    """Normalize a user id string, or None if it is not a UUID"""
    try:
        return str(uuid.UUID(user_id.strip()))
    except (AttributeError, ValueError):
        return None


class UserRepository(ABC):
    """CRUD over User records, unique per (name, service)."""

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Get a user by internal id."""

    @abstractmethod
    async def find_user(self, name: str, service: str) -> User | None:
        """Get a user by its natural key."""

    @abstractmethod
    async def upsert_user(self, profile: ExternalProfile, refresh: bool = False) -> User:
        """Return the user for (profile.name, profile.service), creating it if absent.

        An existing record keeps its id. Its profile fields are only
        overwritten when *refresh* is set.
        """

    @abstractmethod
    async def delete_user(self, name: str, service: str) -> bool:
        """Delete a user by natural key. Returns False if nothing matched."""


# ==================== PostgreSQL ====================


class PostgresUserRepository(UserRepository):
    """Pure SQL operations for the users table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_user(self, user_id: str) -> User | None:
        uid = parse_user_id(user_id)
        if uid is None:
            return None
        try:
            row = await self.pool.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1::uuid", uid
            )
        except _DB_ERRORS as e:
            raise UserStoreError(f"failed reading user {uid}") from e
        return self._row_to_user(row) if row else None

    async def find_user(self, name: str, service: str) -> User | None:
        try:
            row = await self.pool.fetchrow(
                f"SELECT {_USER_COLUMNS} FROM users WHERE name = $1 AND service = $2",
                name,
                service,
            )
        except _DB_ERRORS as e:
            raise UserStoreError(f"failed reading user {service}:{name}") from e
        return self._row_to_user(row) if row else None

    async def upsert_user(self, profile: ExternalProfile, refresh: bool = False) -> User:
        existing = await self.find_user(profile.name, profile.service)
        if existing:
            if not refresh:
                return existing
            return await self._refresh(existing, profile)

        try:
            row = await self.pool.fetchrow(
                f"""
                INSERT INTO users (id, service, name, display_name, email, provider_user_id)
                VALUES ($1::uuid, $2, $3, $4, $5, $6)
                ON CONFLICT (name, service) DO NOTHING
                RETURNING {_USER_COLUMNS}
                """,
                str(uuid.uuid4()),
                profile.service,
                profile.name,
                profile.display_name,
                profile.email,
                profile.provider_user_id,
            )
        except _DB_ERRORS as e:
            raise UserStoreError(f"failed creating user {profile.service}:{profile.name}") from e

        if row is None:
            # A concurrent login inserted the same (name, service) first
            winner = await self.find_user(profile.name, profile.service)
            if winner is None:
                raise UserStoreError(
                    f"user {profile.service}:{profile.name} vanished after conflict"
                )
            return winner

        user = self._row_to_user(row)
        logger.info(f"Created user {user.id} for {user.service}:{user.name}")
        return user

    async def delete_user(self, name: str, service: str) -> bool:
        try:
            result = await self.pool.execute(
                "DELETE FROM users WHERE name = $1 AND service = $2", name, service
            )
        except _DB_ERRORS as e:
            raise UserStoreError(f"failed deleting user {service}:{name}") from e

        deleted = result != "DELETE 0"
        if deleted:
            logger.info(f"Deleted user {service}:{name}")
        return deleted

    async def _refresh(self, user: User, profile: ExternalProfile) -> User:
        try:
            row = await self.pool.fetchrow(
                f"""
                UPDATE users SET
                    display_name     = $2,
                    email            = $3,
                    provider_user_id = $4,
                    updated_at       = NOW()
                WHERE id = $1::uuid
                RETURNING {_USER_COLUMNS}
                """,
                user.id,
                profile.display_name,
                profile.email,
                profile.provider_user_id,
            )
        except _DB_ERRORS as e:
            raise UserStoreError(f"failed refreshing user {user.id}") from e
        return self._row_to_user(row) if row else user

    @staticmethod
    def _row_to_user(row: asyncpg.Record) -> User:
        data = dict(row)
        data["id"] = str(data["id"])
        return User(**data)


# ==================== In-process ====================


class MemoryUserRepository(UserRepository):
    """Users kept in a dict. Contents are lost on restart."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._by_key: dict[tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._users)

    async def get_user(self, user_id: str) -> User | None:
        uid = parse_user_id(user_id)
        return self._users.get(uid) if uid else None

    async def find_user(self, name: str, service: str) -> User | None:
        user_id = self._by_key.get((name, service))
        return self._users.get(user_id) if user_id else None

    async def upsert_user(self, profile: ExternalProfile, refresh: bool = False) -> User:
        key = (profile.name, profile.service)
        async with self._lock:
            user_id = self._by_key.get(key)
            if user_id is not None:
                user = self._users[user_id]
                if refresh:
                    user = replace(
                        user,
                        display_name=profile.display_name,
                        email=profile.email,
                        provider_user_id=profile.provider_user_id,
                        updated_at=datetime.now(UTC),
                    )
                    self._users[user_id] = user
                return user

            now = datetime.now(UTC)
            user = User(
                id=str(uuid.uuid4()),
                service=profile.service,
                name=profile.name,
                display_name=profile.display_name,
                email=profile.email,
                provider_user_id=profile.provider_user_id,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._by_key[key] = user.id

        logger.info(f"Created user {user.id} for {user.service}:{user.name}")
        return user

    async def delete_user(self, name: str, service: str) -> bool:
        async with self._lock:
            user_id = self._by_key.pop((name, service), None)
            if user_id is None:
                return False
            self._users.pop(user_id, None)

        logger.info(f"Deleted user {service}:{name}")
        return True
