from __future__ import annotations

import dataclasses
import logging
from typing import Any, Optional

import requests

from src.journal_util.errors import ApiClientError, JournalDownloadError, LinkExpiredError, NoContentError
from src.journal_util.hubspot.api_client import ApiClient
from src.journal_util.hubspot.models import JournalEntry, JournalPayload


logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECS = 30
LATEST_OFFSET_MESSAGE = "You are already on the latest offset"


def download_journal_data(url: str, session: Optional[requests.Session] = None) -> JournalPayload:
    """
    Fetch the payload behind a signed journal URL.

    The link is pre-authorized, so no bearer token is sent.
    """
    http = session or requests
    try:
        resp = http.get(url, headers={"Accept": "application/json"}, timeout=DOWNLOAD_TIMEOUT_SECS)
    except requests.RequestException as e:
        raise JournalDownloadError(f"Failed to download journal data: {e}") from e

    if resp.status_code == 404:
        raise LinkExpiredError("Journal data file not found - the URL may have expired", 404)
    if resp.status_code == 403:
        raise LinkExpiredError("Access denied to journal data file - the URL may have expired", 403)
    if not resp.ok:
        raise JournalDownloadError(f"Failed to download journal data: HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        raise JournalDownloadError(f"Journal data is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise JournalDownloadError(f"Unexpected journal data shape: {type(data).__name__}")
    return JournalPayload.from_dict(data)


class JournalApi:
    """Journal reads: each call resolves the pointer record and downloads its payload"""

    def __init__(self, api_client: ApiClient, download_session: Optional[requests.Session] = None):
        self.api_client = api_client
        # kept apart from the API session so the Authorization header never reaches the signed URL
        self.download_session = download_session

    def download(self, url: str) -> JournalPayload:
        return download_journal_data(url, self.download_session)

    def _with_data(self, raw: Any) -> JournalEntry:
        if not isinstance(raw, dict):
            raise ApiClientError("Unexpected journal response: empty or non-object body")
        missing = [key for key in ("url", "currentOffset") if not raw.get(key)]
        if missing:
            raise ApiClientError(f"Unexpected journal response: missing {', '.join(missing)}")
        entry = JournalEntry.from_dict(raw)
        data = self.download(entry.url)
        return dataclasses.replace(entry, data=data)

    def get_earliest(self) -> JournalEntry:
        return self._with_data(self.api_client.get("/webhooks/v4/journal/earliest"))

    def get_latest(self) -> JournalEntry:
        return self._with_data(self.api_client.get("/webhooks/v4/journal/latest"))

    def get_next(self, offset: str) -> JournalEntry:
        """
        Next entry after ``offset``.

        Raises:
            NoContentError: nothing has been published after ``offset`` yet
        """
        try:
            raw = self.api_client.get(f"/webhooks/v4/journal/offset/{offset}/next")
        except NoContentError:
            raise NoContentError(LATEST_OFFSET_MESSAGE) from None

        # a 200 without a url means the same thing as a 204
        if not raw or not raw.get("url"):
            raise NoContentError(LATEST_OFFSET_MESSAGE)
        return self._with_data(raw)
