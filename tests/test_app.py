import uuid
from unittest.mock import AsyncMock

import asyncpg
import pytest
from fastapi.testclient import TestClient

from unrustle.app import create_app
from unrustle.core import dependencies
from unrustle.core.config import DatabaseSettings
from unrustle.core.database import get_database_manager
from unrustle.core.exceptions import ConfigurationError


@pytest.fixture()
def db_settings(settings):
    return settings.model_copy(
        update={"database": DatabaseSettings(url="postgresql://localhost/unrustle")}
    )


@pytest.fixture()
def pool(monkeypatch) -> AsyncMock:
    pool = AsyncMock()
    pool.fetchrow.return_value = None
    monkeypatch.setattr(asyncpg, "create_pool", AsyncMock(return_value=pool))
    return pool


def test_database_lifecycle(db_settings, pool):
    with TestClient(create_app(db_settings)) as client:
        assert get_database_manager().is_connected
        schema = pool.execute.await_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS users" in schema

        response = client.get(f"/verify?id={uuid.uuid4()}")
        assert response.status_code == 400
        pool.fetchrow.assert_awaited_once()

    pool.close.assert_awaited_once()
    assert get_database_manager() is None


def test_user_store_failure_is_500(db_settings, pool):
    pool.fetchrow.side_effect = ConnectionResetError("connection lost")

    with TestClient(create_app(db_settings)) as client:
        response = client.get(f"/verify?id={uuid.uuid4()}")

    assert response.status_code == 500
    assert response.text == "Something went wrong, try again"


def test_unreachable_database_is_fatal(db_settings, monkeypatch):
    monkeypatch.setattr(
        asyncpg, "create_pool", AsyncMock(side_effect=OSError("connection refused"))
    )

    with pytest.raises(ConfigurationError):
        with TestClient(create_app(db_settings)):
            pass
    assert get_database_manager() is None


def test_schema_failure_is_fatal(db_settings, pool):
    pool.execute.side_effect = ConnectionResetError("connection lost")

    with pytest.raises(ConfigurationError):
        with TestClient(create_app(db_settings)):
            pass

    pool.close.assert_awaited_once()
    assert get_database_manager() is None


@pytest.mark.parametrize(
    "section, field",
    [
        ("server", "jwt_secret"),
        ("twitch", "client_secret"),
        ("destinygg", "client_id"),
    ],
)
def test_empty_credentials_fail_startup(settings, section, field):
    # model_copy skips validation, as settings built in code can
    broken = getattr(settings, section).model_copy(update={field: ""})
    app = create_app(settings.model_copy(update={section: broken}))

    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass
    assert dependencies._providers is None


def test_docs_hidden_outside_development(settings, client):
    assert settings.server.environment == "test"
    assert client.get("/docs").status_code == 404
