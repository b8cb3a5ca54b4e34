"""Data models for internal users and provider profiles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

TWITCH_SERVICE = "twitch"
DESTINYGG_SERVICE = "destinygg"

SERVICES = (TWITCH_SERVICE, DESTINYGG_SERVICE)


@dataclass
class User:
    """Internal user record, unique per (name, service)."""

    id: str
    service: str
    name: str
    display_name: str | None = None
    email: str | None = None
    provider_user_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ExternalProfile:
    """Normalized user profile returned by an OAuth provider."""

    service: str
    name: str
    display_name: str | None = None
    email: str | None = None
    provider_user_id: str | None = None
