"""Twitch / Destiny.gg OAuth login gateway"""

__version__ = "1.0.0"
