"""Destiny.gg OAuth provider.

Destiny.gg binds the authorization code to a client-held verifier. The
challenge sent with the authorization request is::

    base64(hex(sha256(verifier + hex(sha256(client_secret)))))

where ``hex`` is the lowercase hex digest text and ``base64`` is standard
(padded) base64 of that text.
"""

import base64
import hashlib
import logging
import secrets
import string
from urllib.parse import urlencode

from unrustle.core.exceptions import ProfileFetchError, TokenExchangeError
from unrustle.models import ExternalProfile
from unrustle.models.user import DESTINYGG_SERVICE

from .base import OAuthProvider

logger = logging.getLogger(__name__)

DGG_OAUTH_BASE = "https://www.destiny.gg/oauth"
DGG_USERINFO_URL = "https://destiny.gg/api/userinfo"

VERIFIER_LENGTH = 45
_VERIFIER_ALPHABET = string.ascii_letters + string.digits


def generate_verifier(length: int = VERIFIER_LENGTH) -> str:
    """Random alphanumeric code verifier"""
    return "".join(secrets.choice(_VERIFIER_ALPHABET) for _ in range(length))


def code_challenge(verifier: str, client_secret: str) -> str:
    """Derive the Destiny.gg code challenge for *verifier*"""
    secret = hashlib.sha256(client_secret.encode()).hexdigest()
    digest = hashlib.sha256((verifier + secret).encode()).hexdigest()
    return base64.b64encode(digest.encode()).decode()


class DestinyggProvider(OAuthProvider):
    """Authorization code flow with verifier against destiny.gg."""

    slug = "dgg"
    service = DESTINYGG_SERVICE
    display_name = "Destiny.gg"
    uses_verifier = True

    def build_authorization_url(self, state: str) -> tuple[str, str | None]:
        verifier = generate_verifier()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "state": state,
            "code_challenge": code_challenge(verifier, self.client_secret),
        }
        return f"{DGG_OAUTH_BASE}/authorize?{urlencode(params)}", verifier

    async def exchange_code_for_token(self, code: str, verifier: str | None) -> str:
        if not verifier:
            raise TokenExchangeError("Destiny.gg requires a code verifier", code="no_verifier")

        token_data = await self._request_json(
            "GET",
            f"{DGG_OAUTH_BASE}/token",
            TokenExchangeError,
            "token_exchange_failed",
            params={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "redirect_uri": self.redirect_url,
                "code_verifier": verifier,
            },
        )
        return self._access_token_from(token_data)

    async def fetch_profile(self, access_token: str) -> ExternalProfile:
        user = await self._request_json(
            "GET",
            DGG_USERINFO_URL,
            ProfileFetchError,
            "user_fetch_failed",
            params={"token": access_token},
        )

        username = user.get("username")
        if not username:
            logger.error("Destiny.gg: userinfo has no username")
            raise ProfileFetchError("Destiny.gg user has no username", code="user_fetch_failed")

        logger.debug(f"Fetched Destiny.gg user: {username} ({user.get('userId')})")
        return ExternalProfile(
            service=self.service,
            name=username,
            display_name=user.get("nick") or None,
            provider_user_id=str(user["userId"]) if user.get("userId") is not None else None,
        )
