"""Services layer - Business logic

This module provides service classes for handling business logic.
Services are initialized with their dependencies and accessed through dependency injection.
"""

from .login_service import LoginResult, LoginService
from .providers import DestinyggProvider, OAuthProvider, TwitchProvider
from .session_service import SessionService
from .state_registry import StateRegistry

__all__ = [
    "DestinyggProvider",
    "LoginResult",
    "LoginService",
    "OAuthProvider",
    "SessionService",
    "StateRegistry",
    "TwitchProvider",
]
