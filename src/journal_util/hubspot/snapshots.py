from __future__ import annotations

import logging
from typing import Iterable

from src.journal_util.hubspot.api_client import ApiClient
from src.journal_util.hubspot.models import SnapshotRequest


logger = logging.getLogger(__name__)


class SnapshotsApi:
    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    def create_snapshots(self, requests: Iterable[SnapshotRequest]) -> None:
        """Ask for point-in-time CRM snapshots; results show up in the journal"""
        snapshot_requests = [r.to_payload() for r in requests]
        self.api_client.post("/webhooks/v4/snapshots/crm", {"snapshotRequests": snapshot_requests})
        logger.info("Requested %d snapshot(s)", len(snapshot_requests))
