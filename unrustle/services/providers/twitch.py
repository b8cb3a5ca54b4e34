"""Twitch OAuth provider (Helix API)."""

import logging
from urllib.parse import urlencode

import httpx

from unrustle.core.exceptions import ProfileFetchError, TokenExchangeError
from unrustle.models import ExternalProfile
from unrustle.models.user import TWITCH_SERVICE

from .base import DEFAULT_TIMEOUT, OAuthProvider

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"


class TwitchProvider(OAuthProvider):
    """Authorization code flow against id.twitch.tv, profile from Helix."""

    slug = "twitch"
    service = TWITCH_SERVICE
    display_name = "Twitch"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        cookie_name: str,
        scopes: list[str] | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(
            client_id, client_secret, redirect_url, cookie_name, http=http, timeout=timeout
        )
        self.scopes = list(scopes or [])

    def build_authorization_url(self, state: str) -> tuple[str, str | None]:
        """Generate Twitch OAuth authorization URL. Twitch uses no verifier."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "force_verify": "true",
            "state": state,
        }
        return f"{OAUTH_BASE}/authorize?{urlencode(params)}", None

    async def exchange_code_for_token(self, code: str, verifier: str | None = None) -> str:
        token_data = await self._request_json(
            "POST",
            f"{OAUTH_BASE}/token",
            TokenExchangeError,
            "token_exchange_failed",
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_url,
            },
        )
        return self._access_token_from(token_data)

    async def fetch_profile(self, access_token: str) -> ExternalProfile:
        data = await self._request_json(
            "GET",
            f"{HELIX_BASE}/users",
            ProfileFetchError,
            "user_fetch_failed",
            headers={"Authorization": f"Bearer {access_token}", "Client-Id": self.client_id},
        )

        users = data.get("data")
        if not isinstance(users, list) or not users or not isinstance(users[0], dict):
            logger.error("Twitch: no user in Helix /users response")
            raise ProfileFetchError("Twitch returned no user", code="user_fetch_failed")

        user = users[0]
        login = user.get("login")
        if not login:
            logger.error("Twitch: Helix user has no login")
            raise ProfileFetchError("Twitch user has no login", code="user_fetch_failed")

        logger.debug(f"Fetched Twitch user: {login} ({user.get('id')})")
        return ExternalProfile(
            service=self.service,
            name=login,
            display_name=user.get("display_name") or None,
            email=user.get("email") or None,
            provider_user_id=str(user["id"]) if user.get("id") is not None else None,
        )
