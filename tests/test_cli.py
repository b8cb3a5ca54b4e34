from unittest.mock import AsyncMock, MagicMock

import pytest

from unrustle import main as cli
from unrustle.core.config import DatabaseSettings, get_settings

CONFIG_TOML = """
[twitch]
client_id = "cli-twitch-id"
client_secret = "cli-twitch-secret"
redirect_url = "http://localhost:8080/twitch/callback"

[destinygg]
client_id = "cli-dgg-id"
client_secret = "cli-dgg-secret"
redirect_url = "http://localhost:8080/dgg/callback"

[server]
jwt_secret = "cli-secret"
host = "127.0.0.1"
port = 8765
"""


@pytest.fixture()
def config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    # registered so monkeypatch restores it after main() overwrites it
    monkeypatch.setenv("UNRUSTLE_CONFIG", "config.toml")
    path = tmp_path / "cli.toml"
    path.write_text(CONFIG_TOML)
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


def test_parser_delete_user():
    args = cli.build_parser().parse_args(["delete-user", "someone", "destinygg"])

    assert args.command == "delete-user"
    assert args.name == "someone"
    assert args.service == "destinygg"


def test_parser_rejects_unknown_service():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["delete-user", "someone", "github"])


def test_invalid_config_exits_nonzero(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("UNRUSTLE_CONFIG", "config.toml")
    get_settings.cache_clear()

    assert cli.main(["--config", str(tmp_path / "missing.toml")]) == 1
    assert "Invalid configuration" in capsys.readouterr().err
    get_settings.cache_clear()


def test_empty_jwt_secret_exits_nonzero(config_file, monkeypatch, capsys):
    run = MagicMock()
    monkeypatch.setattr(cli.uvicorn, "run", run)
    config_file.write_text(CONFIG_TOML.replace('jwt_secret = "cli-secret"', 'jwt_secret = ""'))

    assert cli.main(["--config", str(config_file)]) == 1
    assert "jwt_secret" in capsys.readouterr().err
    run.assert_not_called()


def test_serve_runs_uvicorn(config_file, monkeypatch):
    run = MagicMock()
    monkeypatch.setattr(cli.uvicorn, "run", run)

    assert cli.main(["--config", str(config_file), "serve"]) == 0

    run.assert_called_once()
    assert run.call_args.kwargs["host"] == "127.0.0.1"
    assert run.call_args.kwargs["port"] == 8765
    assert run.call_args.kwargs["log_config"] is None


def test_serve_is_default_command(config_file, monkeypatch):
    run = MagicMock()
    monkeypatch.setattr(cli.uvicorn, "run", run)

    assert cli.main(["--config", str(config_file)]) == 0
    run.assert_called_once()


def test_delete_user_without_database(config_file, capsys):
    assert cli.main(["--config", str(config_file), "delete-user", "someone", "twitch"]) == 1
    assert "No database configured" in capsys.readouterr().err


@pytest.fixture()
def db_settings(config_file, monkeypatch):
    monkeypatch.setenv("UNRUSTLE_CONFIG", str(config_file))
    get_settings.cache_clear()
    settings = get_settings()
    return settings.model_copy(
        update={"database": DatabaseSettings(url="postgresql://localhost/unrustle")}
    )


@pytest.fixture()
def fake_db(monkeypatch):
    manager = MagicMock()
    manager.connect = AsyncMock()
    manager.disconnect = AsyncMock()
    repo = MagicMock()
    repo.delete_user = AsyncMock(return_value=True)
    monkeypatch.setattr(cli, "DatabaseManager", MagicMock(return_value=manager))
    monkeypatch.setattr(cli, "PostgresUserRepository", MagicMock(return_value=repo))
    return manager, repo


async def test_delete_user_with_database(db_settings, fake_db, capsys):
    manager, repo = fake_db

    assert await cli.delete_user(db_settings, "someone", "twitch") == 0

    repo.delete_user.assert_awaited_once_with("someone", "twitch")
    manager.connect.assert_awaited_once()
    manager.disconnect.assert_awaited_once()
    assert "Deleted user someone (twitch)" in capsys.readouterr().out


async def test_delete_missing_user(db_settings, fake_db, capsys):
    manager, repo = fake_db
    repo.delete_user.return_value = False

    assert await cli.delete_user(db_settings, "nobody", "destinygg") == 1
    manager.disconnect.assert_awaited_once()
    assert "No user nobody (destinygg)" in capsys.readouterr().out


async def test_delete_user_database_unreachable(db_settings, fake_db, capsys):
    manager, repo = fake_db
    manager.connect.side_effect = OSError("connection refused")

    assert await cli.delete_user(db_settings, "someone", "twitch") == 1
    repo.delete_user.assert_not_awaited()
    assert "Cannot connect to database" in capsys.readouterr().err
