"""Login, callback and session orchestration.

Per provider the visitor is either anonymous (possibly with a login in
flight) or authenticated through a session cookie:

- ``begin_login`` registers a pending authorization and returns the
  provider redirect URL.
- ``complete_login`` consumes the pending authorization, runs the code
  exchange and profile fetch, maps the profile to an internal user and
  issues a session token.
- ``current_user`` resolves a session cookie back to a user.

A failure after the state was consumed leaves nothing behind; the visitor
has to start a fresh login.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from unrustle.core.exceptions import (
    MissingCodeError,
    ProviderDeniedError,
    ProviderError,
    SessionSigningError,
    UnknownProviderError,
    UserStoreError,
)
from unrustle.models import User
from unrustle.repositories import UserRepository

from .providers import OAuthProvider
from .session_service import SessionService
from .state_registry import StateRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful callback."""

    user: User
    token: str


class LoginService:
    """Ties providers, pending state, the user store and sessions together."""

    def __init__(
        self,
        providers: Iterable[OAuthProvider],
        registry: StateRegistry,
        users: UserRepository,
        sessions: SessionService,
        refresh_profile: bool = False,
    ):
        self.providers = {p.slug: p for p in providers}
        self.registry = registry
        self.users = users
        self.sessions = sessions
        self.refresh_profile = refresh_profile

    def get_provider(self, slug: str) -> OAuthProvider:
        """Look up a provider by its route segment"""
        provider = self.providers.get(slug)
        if provider is None:
            raise UnknownProviderError(f"unknown provider: {slug}")
        return provider

    async def begin_login(self, provider: OAuthProvider) -> str:
        """Register a pending authorization and return the provider redirect URL."""
        state = self.registry.new_state()
        url, verifier = provider.build_authorization_url(state)
        await self.registry.register(provider.service, verifier, state=state)
        logger.info(f"{provider.display_name} login started")
        return url

    async def complete_login(
        self,
        provider: OAuthProvider,
        *,
        code: str | None,
        state: str | None,
        error: str | None = None,
    ) -> LoginResult:
        """Finish a login from the provider callback parameters.

        Raises StateNotFoundError, ProviderDeniedError, MissingCodeError,
        TokenExchangeError, ProfileFetchError, UserStoreError or
        SessionSigningError.
        """
        verifier = await self.registry.consume(state, provider.service)

        if error:
            logger.error(f"OAuth error from {provider.display_name}: {error}")
            raise ProviderDeniedError(error)

        if not code:
            logger.error(f"No OAuth code received from {provider.display_name}")
            raise MissingCodeError(f"{provider.display_name} callback without code")

        try:
            access_token = await provider.exchange_code_for_token(code, verifier)
            profile = await provider.fetch_profile(access_token)
        except ProviderError as e:
            logger.error(f"{provider.display_name} login failed ({type(e).__name__}): {e.code}")
            raise

        try:
            user = await self.users.upsert_user(profile, refresh=self.refresh_profile)
        except UserStoreError:
            logger.exception(
                f"User store error during {provider.display_name} login for {profile.name}"
            )
            raise

        try:
            token = self.sessions.issue(user.id)
        except SessionSigningError:
            logger.error(f"Failed signing session for {provider.display_name} user {user.id}")
            raise

        logger.info(f"User logged in: {user.name} ({provider.service}, {user.id})")
        return LoginResult(user=user, token=token)

    async def current_user(self, token: str) -> User | None:
        """Resolve a session token to its user.

        Raises InvalidSessionError for expired, tampered or malformed tokens.
        Returns None when the token is valid but the user no longer exists.
        """
        claims = self.sessions.verify(token)
        return await self.users.get_user(claims.user_id)

    async def lookup_user(self, user_id: str) -> User | None:
        """Get a user by internal id"""
        return await self.users.get_user(user_id)
