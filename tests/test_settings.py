from __future__ import annotations

import pytest

from src.journal_util.config import settings as settings_module
from src.journal_util.config.settings import load_settings, validate_portal_id
from src.journal_util.errors import ConfigError


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: False)
    values = {
        "HUBSPOT_CLIENT_ID": "abcdefgh-1234",
        "HUBSPOT_CLIENT_SECRET": "shh",
        "HUBSPOT_API_BASE_URL": "https://api.hubapi.com/",
        "HUBSPOT_OAUTH_TOKEN_URL": "https://api.hubapi.com/oauth/v1/token",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    for name in ("DEFAULT_PORTAL_ID", "DEBUG", "DEBUG_JOURNAL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_load_settings(env) -> None:
    env.setenv("DEBUG", "TRUE")
    env.setenv("DEFAULT_PORTAL_ID", "12345")

    settings = load_settings()

    assert settings.api_base_url == "https://api.hubapi.com"
    assert settings.debug is True
    assert settings.debug_journal is False
    assert settings.usable_default_portal_id == "12345"
    assert settings.has_placeholder_credentials is False


def test_missing_variables_are_listed(env) -> None:
    env.delenv("HUBSPOT_CLIENT_SECRET")
    env.delenv("HUBSPOT_OAUTH_TOKEN_URL")

    with pytest.raises(ConfigError) as exc_info:
        load_settings()

    assert "HUBSPOT_CLIENT_SECRET, HUBSPOT_OAUTH_TOKEN_URL" in str(exc_info.value)


def test_invalid_url_is_rejected(env) -> None:
    env.setenv("HUBSPOT_API_BASE_URL", "api.hubapi.com")

    with pytest.raises(ConfigError, match="Invalid URL"):
        load_settings()


def test_placeholder_values_are_recognised(env) -> None:
    env.setenv("HUBSPOT_CLIENT_ID", "your_client_id_here")
    env.setenv("DEFAULT_PORTAL_ID", "your_portal_id_here")

    settings = load_settings()

    assert settings.has_placeholder_credentials is True
    assert settings.usable_default_portal_id is None


def test_secret_is_never_described(env) -> None:
    lines = settings_module.describe_settings(load_settings())

    assert not any("shh" in line for line in lines)
    assert "Client ID: abcdefgh..." in lines


@pytest.mark.parametrize("value, expected", [("42", 42), (" 7 ", 7)])
def test_validate_portal_id(value: str, expected: int) -> None:
    assert validate_portal_id(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "0", "-3", "1.5"])
def test_validate_portal_id_rejects(value: str) -> None:
    with pytest.raises(ConfigError):
        validate_portal_id(value)
