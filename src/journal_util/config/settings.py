from __future__ import annotations

from dataclasses import dataclass
import os
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from src.journal_util.errors import ConfigError


REQUIRED_ENV_VARS = (
    "HUBSPOT_CLIENT_ID",
    "HUBSPOT_CLIENT_SECRET",
    "HUBSPOT_API_BASE_URL",
    "HUBSPOT_OAUTH_TOKEN_URL",
)

PLACEHOLDER_CLIENT_ID = "your_client_id_here"
PLACEHOLDER_CLIENT_SECRET = "your_client_secret_here"
PLACEHOLDER_PORTAL_ID = "your_portal_id_here"


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str
    api_base_url: str
    oauth_token_url: str
    default_portal_id: Optional[str]
    debug: bool = False
    debug_journal: bool = False

    @property
    def has_placeholder_credentials(self) -> bool:
        return self.client_id == PLACEHOLDER_CLIENT_ID or self.client_secret == PLACEHOLDER_CLIENT_SECRET

    @property
    def usable_default_portal_id(self) -> Optional[str]:
        """Configured default portal, ignoring the env template placeholder"""
        if not self.default_portal_id or PLACEHOLDER_PORTAL_ID in self.default_portal_id:
            return None
        return self.default_portal_id


_settings: Settings | None = None


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default)


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def load_settings() -> Settings:
    """
    Build settings from the environment (and a .env file when present).

    Raises:
        ConfigError: a required variable is missing or a URL is malformed
    """
    load_dotenv()

    missing: List[str] = [name for name in REQUIRED_ENV_VARS if not _env(name)]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}\n\n"
            "Please create a .env file based on env.template and fill in your HubSpot OAuth credentials."
        )

    settings = Settings(
        client_id=_env("HUBSPOT_CLIENT_ID"),
        client_secret=_env("HUBSPOT_CLIENT_SECRET"),
        api_base_url=_env("HUBSPOT_API_BASE_URL").rstrip("/"),
        oauth_token_url=_env("HUBSPOT_OAUTH_TOKEN_URL"),
        default_portal_id=_env("DEFAULT_PORTAL_ID") or None,
        debug=_env("DEBUG").lower() == "true",
        debug_journal=_env("DEBUG_JOURNAL").lower() == "true",
    )

    if not (_is_http_url(settings.api_base_url) and _is_http_url(settings.oauth_token_url)):
        raise ConfigError("Invalid URL format in configuration")

    return settings


def get_settings() -> Settings:
    global _settings
    if _settings is not None:
        return _settings

    _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


def validate_portal_id(portal_id: str) -> int:
    try:
        parsed = int(str(portal_id).strip())
    except ValueError:
        raise ConfigError("Portal ID must be a positive integer") from None
    if parsed <= 0:
        raise ConfigError("Portal ID must be a positive integer")
    return parsed


def describe_settings(settings: Settings) -> List[str]:
    """Lines safe to print: the client secret is never included"""
    return [
        f"API Base URL: {settings.api_base_url}",
        f"OAuth Token URL: {settings.oauth_token_url}",
        f"Default Portal ID: {settings.usable_default_portal_id or 'Not set'}",
        f"Debug: {settings.debug}",
        f"Client ID: {settings.client_id[:8]}...",
    ]
