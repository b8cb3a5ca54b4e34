"""OAuth login providers"""

from .base import OAuthProvider
from .destinygg import DestinyggProvider
from .twitch import TwitchProvider

__all__ = [
    "DestinyggProvider",
    "OAuthProvider",
    "TwitchProvider",
]
