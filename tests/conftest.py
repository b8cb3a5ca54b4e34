import pytest
from fastapi.testclient import TestClient

from unrustle.app import create_app
from unrustle.core.config import DestinyggSettings, ServerSettings, Settings, TwitchSettings
from unrustle.core.dependencies import get_login_service
from unrustle.repositories import MemoryUserRepository
from unrustle.services import (
    DestinyggProvider,
    LoginService,
    SessionService,
    StateRegistry,
    TwitchProvider,
)

TEST_JWT_SECRET = "test-session-secret"

TWITCH_REDIRECT = "http://testserver/twitch/callback"
DGG_REDIRECT = "http://testserver/dgg/callback"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        twitch=TwitchSettings(
            client_id="twitch-client",
            client_secret="twitch-secret",
            redirect_url=TWITCH_REDIRECT,
        ),
        destinygg=DestinyggSettings(
            client_id="dgg-client",
            client_secret="dgg-secret",
            redirect_url=DGG_REDIRECT,
        ),
        server=ServerSettings(jwt_secret=TEST_JWT_SECRET, environment="test"),
    )


@pytest.fixture()
def registry() -> StateRegistry:
    return StateRegistry(ttl=300.0)


@pytest.fixture()
def users() -> MemoryUserRepository:
    return MemoryUserRepository()


@pytest.fixture()
def sessions() -> SessionService:
    return SessionService(TEST_JWT_SECRET)


@pytest.fixture()
def twitch() -> TwitchProvider:
    return TwitchProvider(
        client_id="twitch-client",
        client_secret="twitch-secret",
        redirect_url=TWITCH_REDIRECT,
        cookie_name="twitch_session",
        scopes=["user:read:email"],
    )


@pytest.fixture()
def dgg() -> DestinyggProvider:
    return DestinyggProvider(
        client_id="dgg-client",
        client_secret="dgg-secret",
        redirect_url=DGG_REDIRECT,
        cookie_name="dgg_session",
    )


@pytest.fixture()
def login_service(twitch, dgg, registry, users, sessions) -> LoginService:
    return LoginService(
        providers=[twitch, dgg], registry=registry, users=users, sessions=sessions
    )


@pytest.fixture()
def app(settings, login_service):
    app = create_app(settings)
    app.dependency_overrides[get_login_service] = lambda: login_service
    return app


@pytest.fixture()
def client(app):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
