"""Status, verify and robots pages"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from unrustle.core.cookies import clear_session_cookie
from unrustle.core.dependencies import get_login_service
from unrustle.core.exceptions import InvalidSessionError, UserStoreError
from unrustle.repositories.users import parse_user_id
from unrustle.services import LoginService

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=TEMPLATES_DIR)

router = APIRouter(tags=["pages"])

ROBOTS_TXT = "User-agent: *\nDisallow: /"


# ============================================
# Page payloads
# ============================================


class ProviderStatus(BaseModel):
    slug: str
    display_name: str
    logged_in: bool = False
    id: str = ""
    name: str = ""
    email: str = ""


class IndexPayload(BaseModel):
    providers: list[ProviderStatus]


class VerifyPayload(BaseModel):
    valid: bool = False
    id: str = ""
    user_id: str = ""  # provider-side id
    name: str = ""
    email: str = ""
    service: str = ""


# ============================================
# Endpoints
# ============================================


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    login_service: LoginService = Depends(get_login_service),
) -> HTMLResponse:
    """Show which providers the visitor is logged in with"""
    statuses: list[ProviderStatus] = []
    stale_cookies: list[str] = []

    for provider in login_service.providers.values():
        status = ProviderStatus(slug=provider.slug, display_name=provider.display_name)
        token = request.cookies.get(provider.cookie_name)
        if token:
            try:
                user = await login_service.current_user(token)
            except InvalidSessionError as e:
                logger.warning(f"Dropping {provider.display_name} session cookie: {e}")
                stale_cookies.append(provider.cookie_name)
                user = None
            except UserStoreError:
                logger.exception(f"Could not load {provider.display_name} session user")
                user = None

            if user:
                status = ProviderStatus(
                    slug=provider.slug,
                    display_name=provider.display_name,
                    logged_in=True,
                    id=user.id,
                    name=user.display_name or user.name,
                    email=user.email or "",
                )
        statuses.append(status)

    response = templates.TemplateResponse(
        request, "index.html", {"payload": IndexPayload(providers=statuses)}
    )
    for cookie_name in stale_cookies:
        clear_session_cookie(response, request, cookie_name)
    return response


@router.get("/verify", response_class=HTMLResponse)
async def verify(
    request: Request,
    id: str | None = None,
    login_service: LoginService = Depends(get_login_service),
) -> HTMLResponse:
    """Look up an internal user id and show its unredacted profile"""
    payload = VerifyPayload()
    if id:
        user_id = parse_user_id(id)
        if user_id is None:
            return templates.TemplateResponse(
                request, "verify.html", {"payload": payload}, status_code=400
            )

        user = await login_service.lookup_user(user_id)
        if user is None:
            return templates.TemplateResponse(
                request, "verify.html", {"payload": payload}, status_code=400
            )

        payload = VerifyPayload(
            valid=True,
            id=user_id,
            user_id=user.provider_user_id or "",
            name=user.name,
            email=user.email or "",
            service=user.service,
        )

    return templates.TemplateResponse(request, "verify.html", {"payload": payload})


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots() -> str:
    return ROBOTS_TXT
