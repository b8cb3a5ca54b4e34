"""Login, callback and logout routes, one set per provider"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from unrustle.core.cookies import clear_session_cookie, set_session_cookie
from unrustle.core.dependencies import get_login_service
from unrustle.core.exceptions import (
    MissingCodeError,
    ProfileFetchError,
    ProviderDeniedError,
    SessionSigningError,
    StateNotFoundError,
    StateRegistryFullError,
    TokenExchangeError,
    UnknownProviderError,
    UserStoreError,
)
from unrustle.services import LoginService, OAuthProvider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])

HOME_URL = "/"


def resolve_provider(
    provider: str,
    login_service: LoginService = Depends(get_login_service),
) -> OAuthProvider:
    """Map the ``{provider}`` path segment to a provider, 404 if unknown"""
    try:
        return login_service.get_provider(provider)
    except UnknownProviderError:
        raise HTTPException(status_code=404, detail="Not Found") from None


def _redirect_home() -> RedirectResponse:
    return RedirectResponse(url=HOME_URL, status_code=302)


# ============================================
# Endpoints
# ============================================


@router.get("/{provider}/login")
async def login(
    provider: OAuthProvider = Depends(resolve_provider),
    login_service: LoginService = Depends(get_login_service),
) -> Response:
    """Redirect to the provider's authorization page"""
    try:
        oauth_url = await login_service.begin_login(provider)
    except StateRegistryFullError:
        return PlainTextResponse("Too many pending logins, try again later", status_code=503)
    return RedirectResponse(url=oauth_url, status_code=302)


@router.get("/{provider}/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    provider: OAuthProvider = Depends(resolve_provider),
    login_service: LoginService = Depends(get_login_service),
) -> Response:
    """Handle the provider's OAuth callback"""
    try:
        result = await login_service.complete_login(provider, code=code, state=state, error=error)
    except StateNotFoundError:
        logger.warning(f"{provider.display_name} callback with unknown or expired state")
        return _redirect_home()
    except ProviderDeniedError as e:
        return PlainTextResponse(
            f"Authentication could not be completed: {e.error}", status_code=401
        )
    except MissingCodeError:
        return PlainTextResponse("Authentication failed without error", status_code=401)
    except TokenExchangeError:
        return PlainTextResponse(
            "Failed to get token from OAuth exchange code", status_code=401
        )
    except ProfileFetchError:
        return PlainTextResponse(
            f"{provider.display_name} API failure while retrieving user", status_code=503
        )
    except (UserStoreError, SessionSigningError):
        return PlainTextResponse("Something went wrong, try again", status_code=500)

    response = _redirect_home()
    set_session_cookie(
        response,
        request,
        provider.cookie_name,
        result.token,
        max_age=login_service.sessions.max_age,
    )
    return response


@router.get("/{provider}/logout")
async def logout(
    request: Request,
    provider: OAuthProvider = Depends(resolve_provider),
) -> RedirectResponse:
    """Clear the provider's session cookie"""
    response = _redirect_home()
    clear_session_cookie(response, request, provider.cookie_name)
    logger.info(f"{provider.display_name} session cookie cleared")
    return response
