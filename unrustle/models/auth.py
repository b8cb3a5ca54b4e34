"""Data models for pending OAuth logins and session tokens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class PendingAuthorization:
    """An in-flight login waiting for its provider callback."""

    state: str
    service: str
    verifier: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class SessionClaims:
    """Payload carried by a session token."""

    user_id: str
    expires_at: datetime
    issued_at: datetime | None = None
