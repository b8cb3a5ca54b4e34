"""PostgreSQL pool for the users table.

The pool is created once at startup and the users table is created with it,
so a reachable database is always a usable one.
"""

import logging

import asyncpg

from unrustle.repositories.users import USERS_SCHEMA

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages PostgreSQL connection pool lifecycle"""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Create the connection pool and the users table"""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        try:
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=1,
                max_size=5,
                timeout=30.0,
                command_timeout=60.0,
                max_inactive_connection_lifetime=300.0,
            )
            logger.info("Database pool created")
        except Exception as e:
            logger.exception(f"Failed to create database pool: {e}")
            raise

        try:
            await self._pool.execute(USERS_SCHEMA)
        except Exception as e:
            logger.exception(f"Failed to create users table: {e}")
            await self._pool.close()
            self._pool = None
            raise
        logger.info("Users table ready")

    async def disconnect(self) -> None:
        """Close database connection pool"""
        if self._pool is None:
            return

        try:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")
        except Exception as e:
            logger.exception(f"Error closing database pool: {e}")

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the database connection pool"""
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager | None:
    """Get the global database manager instance, if one was initialized"""
    return _db_manager


def init_database_manager(database_url: str) -> DatabaseManager:
    """Initialize the global database manager"""
    global _db_manager
    _db_manager = DatabaseManager(database_url)
    return _db_manager


def reset_database_manager() -> None:
    """Forget the global database manager (after disconnect)"""
    global _db_manager
    _db_manager = None
