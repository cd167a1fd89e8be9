from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from src.journal_util.errors import ApiClientError, AuthError, NoContentError
from src.journal_util.hubspot.auth import TokenCache


logger = logging.getLogger(__name__)

API_TIMEOUT_SECS = 30


def _api_error(resp: requests.Response) -> ApiClientError:
    """Map an error response onto ApiClientError, keeping HubSpot's correlation id when present"""
    try:
        body = resp.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        return ApiClientError(
            f"API Error: {body.get('message') or 'Unknown error'}",
            resp.status_code,
            body.get("correlationId"),
            body.get("category"),
        )
    return ApiClientError(f"HTTP Error: {resp.status_code} {resp.reason or ''}".rstrip(), resp.status_code)


class ApiClient:
    """Authenticated JSON client for the webhooks v4 API"""

    def __init__(self, base_url: str, token_cache: TokenCache, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token_cache = token_cache
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def close(self) -> None:
        self.session.close()

    def _send(self, method: str, path: str, body: Any, access_token: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            return self.session.request(method, url, json=body, headers=headers, timeout=API_TIMEOUT_SECS)
        except requests.RequestException as e:
            logger.debug("%s %s failed: %s", method, path, e)
            raise ApiClientError(f"HTTP Error: {e}") from e

    def request(self, method: str, path: str, body: Any = None) -> Any:
        """
        Send one API call, refreshing the token and retrying once on 401

        Returns:
            Decoded JSON body, or None for an empty success body
        """
        token = self.token_cache.get_token()
        resp = self._send(method, path, body, token.access_token)

        if resp.status_code == 401:
            logger.info("%s %s -> 401, refreshing token and retrying once", method, path)
            try:
                token = self.token_cache.force_refresh()
            except AuthError as e:
                logger.warning("Token refresh after 401 failed: %s", e)
                raise _api_error(resp) from e
            resp = self._send(method, path, body, token.access_token)

        logger.debug("%s %s -> %s", method, path, resp.status_code)

        if resp.status_code == 204 and method != "DELETE":
            raise NoContentError()
        if not resp.ok:
            raise _api_error(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiClientError(f"Invalid JSON in response from {path}", resp.status_code) from e

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def post(self, path: str, body: Any = None) -> Any:
        return self.request("POST", path, body)

    def put(self, path: str, body: Any = None) -> Any:
        return self.request("PUT", path, body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
