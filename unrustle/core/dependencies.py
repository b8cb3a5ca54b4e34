"""Dependency injection utilities for FastAPI"""

import logging

from fastapi import Depends, HTTPException

from unrustle.core.config import Settings, get_settings
from unrustle.core.database import get_database_manager
from unrustle.repositories import MemoryUserRepository, PostgresUserRepository, UserRepository
from unrustle.services import (
    DestinyggProvider,
    LoginService,
    OAuthProvider,
    SessionService,
    StateRegistry,
    TwitchProvider,
)

logger = logging.getLogger(__name__)


# ============================================
# Service Dependencies
# ============================================


def get_session_service(settings: Settings = Depends(get_settings)) -> SessionService:
    """Get SessionService instance (dependency injection)"""
    return SessionService(
        secret_key=settings.server.jwt_secret,
        algorithm=settings.server.jwt_algorithm,
        expire_days=settings.server.session_ttl_days,
    )


_state_registry: StateRegistry | None = None


def get_state_registry(settings: Settings = Depends(get_settings)) -> StateRegistry:
    """Get the shared StateRegistry singleton (pending logins live in process)."""
    global _state_registry
    if _state_registry is None:
        _state_registry = StateRegistry(ttl=settings.server.state_ttl_seconds)
    return _state_registry


_providers: list[OAuthProvider] | None = None


def get_providers(settings: Settings = Depends(get_settings)) -> list[OAuthProvider]:
    """Get shared provider clients (connection reuse across requests)."""
    global _providers
    if _providers is None:
        timeout = settings.server.http_timeout
        _providers = [
            TwitchProvider(
                client_id=settings.twitch.client_id,
                client_secret=settings.twitch.client_secret,
                redirect_url=settings.twitch.redirect_url,
                cookie_name=settings.twitch.cookie,
                scopes=settings.twitch.scopes,
                timeout=timeout,
            ),
            DestinyggProvider(
                client_id=settings.destinygg.client_id,
                client_secret=settings.destinygg.client_secret,
                redirect_url=settings.destinygg.redirect_url,
                cookie_name=settings.destinygg.cookie,
                timeout=timeout,
            ),
        ]
    return _providers


async def close_providers() -> None:
    """Close the shared provider clients. Call on app shutdown."""
    global _providers
    if _providers is not None:
        for provider in _providers:
            await provider.close()
        _providers = None


_memory_users: MemoryUserRepository | None = None


def get_user_repository(settings: Settings = Depends(get_settings)) -> UserRepository:
    """PostgreSQL repository when a database is configured, else the in-process store"""
    global _memory_users
    if settings.database.url:
        db_manager = get_database_manager()
        if db_manager is None or not db_manager.is_connected:
            raise HTTPException(status_code=503, detail="Database not ready")
        return PostgresUserRepository(db_manager.pool)

    if _memory_users is None:
        logger.warning("No database URL configured, users are kept in memory")
        _memory_users = MemoryUserRepository()
    return _memory_users


def get_login_service(
    settings: Settings = Depends(get_settings),
    providers: list[OAuthProvider] = Depends(get_providers),
    registry: StateRegistry = Depends(get_state_registry),
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionService = Depends(get_session_service),
) -> LoginService:
    """Get LoginService instance (dependency injection)"""
    return LoginService(
        providers=providers,
        registry=registry,
        users=users,
        sessions=sessions,
        refresh_profile=settings.server.refresh_profile_on_login,
    )
