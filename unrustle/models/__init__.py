"""Data models for the login gateway."""

from .auth import PendingAuthorization, SessionClaims
from .user import DESTINYGG_SERVICE, SERVICES, TWITCH_SERVICE, ExternalProfile, User

__all__ = [
    "DESTINYGG_SERVICE",
    "SERVICES",
    "TWITCH_SERVICE",
    "ExternalProfile",
    "PendingAuthorization",
    "SessionClaims",
    "User",
]
