from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import requests

from src.journal_util.errors import AuthError


logger = logging.getLogger(__name__)

REQUIRED_SCOPES: Tuple[str, ...] = (
    "developer.webhooks_journal.read",
    "developer.webhooks_journal.snapshots.read",
    "developer.webhooks_journal.snapshots.write",
    "developer.webhooks_journal.subscriptions.read",
    "developer.webhooks_journal.subscriptions.write",
)

EXPIRY_BUFFER_MS = 5 * 60 * 1000
TOKEN_TIMEOUT_SECS = 30


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Token:
    access_token: str
    token_type: str
    expires_in: int
    obtained_at_ms: int
    scope: Optional[str] = None


@dataclass(frozen=True)
class TokenInfo:
    has_token: bool
    is_expired: bool
    expires_in_seconds: Optional[int] = None


def is_token_expired(token: Token, now_ms: Optional[int] = None) -> bool:
    """True once we are within five minutes of the server-side expiry"""
    now = _now_ms() if now_ms is None else now_ms
    expiration = token.obtained_at_ms + token.expires_in * 1000
    return now >= expiration - EXPIRY_BUFFER_MS


def _error_fields(resp: requests.Response) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    try:
        body = resp.json()
    except ValueError:
        return None, None, None
    if not isinstance(body, dict):
        return None, None, None
    return body.get("message"), body.get("correlationId"), body.get("category")


def fetch_access_token(
    token_url: str,
    client_id: str,
    client_secret: str,
    scopes: Tuple[str, ...] = REQUIRED_SCOPES,
    session: Optional[requests.Session] = None,
    now_ms: Optional[int] = None,
) -> Token:
    """
    Exchange client credentials for an access token

    Returns:
        Token stamped with the time it was obtained
    """
    data = {
        "grant_type": "client_credentials",
        "client_id": client_id,
        "client_secret": client_secret,
        "scope": " ".join(scopes),
    }
    logger.debug("Requesting scopes: %s", data["scope"])
    http = session or requests
    try:
        resp = http.post(token_url, data=data, timeout=TOKEN_TIMEOUT_SECS)
    except requests.RequestException as e:
        raise AuthError(f"OAuth request failed: {e}", category="HTTP_ERROR") from e

    if not resp.ok:
        message, correlation_id, category = _error_fields(resp)
        if message or correlation_id or category:
            raise AuthError(
                f"OAuth authentication failed: {message or 'Unknown error'}",
                correlation_id,
                category,
            )
        raise AuthError(f"OAuth request failed: HTTP {resp.status_code}", category="HTTP_ERROR")

    try:
        payload = resp.json()
        token = Token(
            access_token=payload["access_token"],
            token_type=payload.get("token_type", "bearer"),
            expires_in=int(payload["expires_in"]),
            obtained_at_ms=_now_ms() if now_ms is None else now_ms,
            scope=payload.get("scope"),
        )
    except (ValueError, KeyError, TypeError) as e:
        raise AuthError(f"Incomplete token payload returned from token endpoint: {e}") from e

    logger.debug("Access token obtained: type=%s expires_in=%ss scopes=%s",
                 token.token_type, token.expires_in, token.scope or "Not specified")
    return token


class TokenCache:
    """Holds the single bearer token used by the API client"""

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        session: Optional[requests.Session] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session
        self._clock = clock
        self._token: Optional[Token] = None
        self._lock = threading.Lock()

    @property
    def required_scopes(self) -> Tuple[str, ...]:
        return REQUIRED_SCOPES

    def _exchange(self) -> Token:
        return fetch_access_token(
            self.token_url,
            self.client_id,
            self.client_secret,
            session=self.session,
            now_ms=self._clock(),
        )

    def get_token(self) -> Token:
        with self._lock:
            if self._token is not None and not is_token_expired(self._token, self._clock()):
                return self._token
            logger.info("Fetching new access token")
            self._token = self._exchange()
            return self._token

    def force_refresh(self) -> Token:
        with self._lock:
            logger.info("Force refreshing access token")
            self._token = self._exchange()
            return self._token

    def clear(self) -> None:
        with self._lock:
            self._token = None
        logger.debug("Token cleared")

    def token_info(self) -> TokenInfo:
        with self._lock:
            token = self._token
        if token is None:
            return TokenInfo(has_token=False, is_expired=True)

        now = self._clock()
        expiration = token.obtained_at_ms + token.expires_in * 1000
        return TokenInfo(
            has_token=True,
            is_expired=is_token_expired(token, now),
            expires_in_seconds=max(0, (expiration - now) // 1000),
        )
