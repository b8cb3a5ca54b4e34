"""Abstract base class for OAuth 2.0 login providers.

Implements the three-step authorization code flow shared by every provider:
build the authorization URL, exchange the code for an access token, fetch the
user profile. Subclasses supply endpoints and response parsing.

Every network, status or decoding failure surfaces as a ``ProviderError``
subclass. There are no retries.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from unrustle.core.exceptions import ProfileFetchError, TokenExchangeError
from unrustle.models import ExternalProfile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class OAuthProvider(ABC):
    """One external identity provider.

    Owns a shared ``httpx.AsyncClient``; pass ``http`` to inject a client
    (e.g. one with a mock transport).
    """

    slug: str
    service: str
    display_name: str
    uses_verifier: bool = False

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        cookie_name: str,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not client_id or not client_secret:
            raise ValueError(f"{self.display_name} client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.cookie_name = cookie_name

        # Shared HTTP client, reuses TCP connections across requests
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on app shutdown."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Flow steps
    # ------------------------------------------------------------------

    @abstractmethod
    def build_authorization_url(self, state: str) -> tuple[str, str | None]:
        """Return (authorization URL, verifier to keep until the callback)."""

    @abstractmethod
    async def exchange_code_for_token(self, code: str, verifier: str | None) -> str:
        """Exchange an authorization code for an access token."""

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> ExternalProfile:
        """Fetch the authenticated user's profile."""

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request_json(
        self,
        method: str,
        url: str,
        error_cls: type[TokenExchangeError] | type[ProfileFetchError],
        failure_code: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Send one request and decode a JSON object body, raising *error_cls* on failure."""
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{self.display_name}: timeout calling {url}")
            raise error_cls(f"{self.display_name} request timed out", code="timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.display_name}: request to {url} failed: {type(e).__name__}: {e}")
            raise error_cls(f"{self.display_name} request failed", code=failure_code) from e

        if not response.is_success:
            logger.error(f"{self.display_name}: {url} returned {response.status_code}")
            logger.error(f"Response: {response.text}")
            raise error_cls(
                f"{self.display_name} returned HTTP {response.status_code}", code=failure_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{self.display_name}: {url} returned malformed JSON")
            raise error_cls(
                f"{self.display_name} returned malformed JSON", code=failure_code
            ) from e

        if not isinstance(data, dict):
            logger.error(f"{self.display_name}: {url} returned {type(data).__name__}")
            raise error_cls(f"{self.display_name} returned unexpected JSON", code=failure_code)
        return data

    def _access_token_from(self, token_data: dict[str, Any]) -> str:
        access_token = token_data.get("access_token")
        if not access_token or not isinstance(access_token, str):
            logger.error(f"{self.display_name}: no access_token in response")
            raise TokenExchangeError(
                f"{self.display_name} did not return an access token", code="no_access_token"
            )
        return access_token
