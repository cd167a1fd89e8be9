from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from src.journal_util.errors import ApiClientError
from src.journal_util.hubspot.api_client import ApiClient
from src.journal_util.hubspot.models import CreateSubscriptionRequest, Subscription


logger = logging.getLogger(__name__)

SUBSCRIPTIONS_PATH = "/webhooks/v4/subscriptions"


@dataclass
class PortalDeleteReport:
    """Outcome of deleting every subscription of a portal"""

    portal_id: int
    used_fallback: bool = False
    # (subscription id, error or None) per individual delete
    outcomes: List[Tuple[int, Optional[Exception]]] = field(default_factory=list)

    @property
    def deleted(self) -> List[int]:
        return [sub_id for sub_id, err in self.outcomes if err is None]

    @property
    def failed(self) -> List[Tuple[int, Exception]]:
        return [(sub_id, err) for sub_id, err in self.outcomes if err is not None]


class SubscriptionsApi:
    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    def list_subscriptions(self) -> List[Subscription]:
        response = self.api_client.get(SUBSCRIPTIONS_PATH) or {}
        return [Subscription.from_dict(item) for item in response.get("results", [])]

    def create_subscription(self, request: CreateSubscriptionRequest) -> Subscription:
        created = self.api_client.post(SUBSCRIPTIONS_PATH, request.to_payload())
        logger.info("Created subscription %s for portal %s", created.get("id"), request.portal_id)
        return Subscription.from_dict(created)

    def delete_subscription(self, subscription_id: int) -> None:
        self.api_client.delete(f"{SUBSCRIPTIONS_PATH}/{subscription_id}")
        logger.info("Deleted subscription %s", subscription_id)

    def delete_portal_subscriptions(self, portal_id: int) -> PortalDeleteReport:
        """
        Bulk-delete a portal's subscriptions, falling back to one-by-one
        deletion when the bulk endpoint fails server-side.
        """
        try:
            self.api_client.delete(f"{SUBSCRIPTIONS_PATH}/portals/{portal_id}")
            return PortalDeleteReport(portal_id=portal_id)
        except ApiClientError as e:
            if e.status_code is None or e.status_code < 500:
                raise
            logger.warning("Bulk delete for portal %s failed (%s), trying individual deletion", portal_id, e.status_code)

        return self._delete_individually(portal_id)

    def _delete_individually(self, portal_id: int) -> PortalDeleteReport:
        report = PortalDeleteReport(portal_id=portal_id, used_fallback=True)
        portal_subscriptions = [s for s in self.list_subscriptions() if s.portal_id == portal_id]

        if not portal_subscriptions:
            logger.info("No subscriptions found for portal %s", portal_id)
            return report

        logger.info("Deleting %d subscription(s) individually", len(portal_subscriptions))
        for subscription in portal_subscriptions:
            try:
                self.delete_subscription(subscription.id)
                report.outcomes.append((subscription.id, None))
            except ApiClientError as e:
                logger.error("Failed to delete subscription %s: %s", subscription.id, e)
                report.outcomes.append((subscription.id, e))
        return report
