from __future__ import annotations

import pytest

from src.journal_util.errors import ApiClientError
from src.journal_util.hubspot.api_client import ApiClient
from src.journal_util.hubspot.models import CreateSubscriptionRequest, SnapshotRequest
from src.journal_util.hubspot.snapshots import SnapshotsApi
from src.journal_util.hubspot.subscriptions import SubscriptionsApi

from tests._fakes import FakeResponse, FakeSession


def _subscription(sub_id: int, portal_id: int) -> dict:
    return {
        "id": sub_id,
        "appId": 99,
        "subscriptionType": "OBJECT",
        "objectTypeId": "0-1",
        "portalId": portal_id,
        "actions": ["CREATE"],
        "createdAt": "2025-01-01T00:00:00Z",
        "updatedAt": "2025-01-02T00:00:00Z",
    }


LISTING = {"results": [_subscription(1, 42), _subscription(2, 42), _subscription(3, 7), _subscription(4, 42)]}


def _api(token_cache, responses):
    session = FakeSession(responses)
    return ApiClient("https://api.example.com", token_cache, session=session), session


def test_bulk_delete_success_does_not_fall_back(token_cache) -> None:
    client, session = _api(token_cache, [FakeResponse(204)])

    report = SubscriptionsApi(client).delete_portal_subscriptions(42)

    assert report.used_fallback is False
    assert [c["url"] for c in session.calls] == ["https://api.example.com/webhooks/v4/subscriptions/portals/42"]


def test_bulk_delete_server_error_falls_back_per_subscription(token_cache) -> None:
    client, session = _api(
        token_cache,
        [
            FakeResponse(500, {"message": "internal"}),
            FakeResponse(200, LISTING),
            FakeResponse(204),
            FakeResponse(404, {"message": "not found", "correlationId": "corr-2"}),
            FakeResponse(204),
        ],
    )

    report = SubscriptionsApi(client).delete_portal_subscriptions(42)

    assert report.used_fallback is True
    deletes = [c["url"].rsplit("/", 1)[-1] for c in session.calls if c["method"] == "DELETE"]
    assert deletes == ["42", "1", "2", "4"]
    assert report.deleted == [1, 4]
    [(failed_id, error)] = report.failed
    assert failed_id == 2
    assert error.status_code == 404
    assert error.correlation_id == "corr-2"


def test_bulk_delete_client_error_is_raised(token_cache) -> None:
    client, session = _api(token_cache, [FakeResponse(400, {"message": "bad portal"})])

    with pytest.raises(ApiClientError) as exc_info:
        SubscriptionsApi(client).delete_portal_subscriptions(42)

    assert exc_info.value.status_code == 400
    assert len(session.calls) == 1


def test_list_subscriptions_parses_results(token_cache) -> None:
    client, _ = _api(token_cache, [FakeResponse(200, LISTING)])

    subs = SubscriptionsApi(client).list_subscriptions()

    assert [s.id for s in subs] == [1, 2, 3, 4]
    assert subs[2].portal_id == 7
    assert subs[0].actions == ["CREATE"]


def test_create_subscription_omits_empty_filters(token_cache) -> None:
    client, session = _api(token_cache, [FakeResponse(201, _subscription(10, 42))])
    request = CreateSubscriptionRequest(
        object_type_id="0-1",
        subscription_type="OBJECT",
        portal_id=42,
        actions=["CREATE"],
        properties=None,
        object_ids=[],
    )

    created = SubscriptionsApi(client).create_subscription(request)

    assert created.id == 10
    assert session.calls[0]["json"] == {
        "objectTypeId": "0-1",
        "subscriptionType": "OBJECT",
        "portalId": 42,
        "actions": ["CREATE"],
    }


def test_snapshots_are_posted_in_one_batch(token_cache) -> None:
    client, session = _api(token_cache, [FakeResponse(200, {})])

    SnapshotsApi(client).create_snapshots(
        [SnapshotRequest(42, 1001, "0-1", ["email"]), SnapshotRequest(42, 1002, "0-1")]
    )

    call = session.calls[0]
    assert call["url"].endswith("/webhooks/v4/snapshots/crm")
    assert call["json"] == {
        "snapshotRequests": [
            {"portalId": 42, "objectId": 1001, "objectTypeId": "0-1", "properties": ["email"]},
            {"portalId": 42, "objectId": 1002, "objectTypeId": "0-1", "properties": []},
        ]
    }
