from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


OBJECT_TYPE_IDS: Dict[str, str] = {
    "CONTACTS": "0-1",
    "COMPANIES": "0-2",
    "DEALS": "0-3",
    "ENGAGEMENTS": "0-4",
    "TICKETS": "0-5",
    "PRODUCTS": "0-7",
    "LINE_ITEMS": "0-8",
    "CONVERSATIONS": "0-11",
    "QUOTES": "0-14",
    "FORMS": "0-15",
    "FEEDBACK_SUBMISSIONS": "0-19",
    "ATTRIBUTIONS": "0-20",
    "TASKS": "0-27",
    "OBJECT_LISTS": "0-45",
}

OBJECT_TYPE_NAMES: Dict[str, str] = {
    "0-1": "Contacts",
    "0-2": "Companies",
    "0-3": "Deals",
    "0-4": "Engagements",
    "0-5": "Tickets",
    "0-7": "Products",
    "0-8": "Line Items",
    "0-11": "Conversations",
    "0-14": "Quotes",
    "0-15": "Forms",
    "0-19": "Feedback Submissions",
    "0-20": "Attributions",
    "0-27": "Tasks",
    "0-45": "Object Lists",
}

SUBSCRIPTION_ACTIONS = (
    "CREATE",
    "UPDATE",
    "DELETE",
    "MERGE",
    "RESTORE",
    "ASSOCIATION_ADDED",
    "ASSOCIATION_REMOVED",
    "SNAPSHOT",
)

ACTIONS_BY_SUBSCRIPTION_TYPE: Dict[str, tuple] = {
    "OBJECT": ("CREATE", "UPDATE", "DELETE", "MERGE", "RESTORE"),
    "ASSOCIATION": ("ASSOCIATION_ADDED", "ASSOCIATION_REMOVED"),
}

ACTION_DESCRIPTIONS: Dict[str, str] = {
    "CREATE": "Object creation events",
    "UPDATE": "Object modification events",
    "DELETE": "Object deletion events",
    "MERGE": "Object merge events",
    "RESTORE": "Object restoration events",
    "ASSOCIATION_ADDED": "Association creation events",
    "ASSOCIATION_REMOVED": "Association removal events",
    "SNAPSHOT": "Snapshot generation events",
}


def format_object_type_name(object_type_id: str) -> str:
    return OBJECT_TYPE_NAMES.get(object_type_id, f"Custom Object ({object_type_id})")


def describe_action(action: str) -> str:
    return ACTION_DESCRIPTIONS.get(action, "Unknown action")


# -----------------------------
# Subscriptions / snapshots
# -----------------------------
@dataclass(frozen=True)
class Subscription:
    id: int
    app_id: int
    subscription_type: str
    object_type_id: str
    portal_id: int
    actions: List[str]
    created_at: str
    updated_at: str
    properties: Optional[List[str]] = None
    object_ids: Optional[List[int]] = None
    associated_object_type_ids: Optional[List[str]] = None
    created_by: Optional[int] = None
    deleted_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subscription":
        return cls(
            id=int(data["id"]),
            app_id=int(data.get("appId", 0)),
            subscription_type=data.get("subscriptionType", "OBJECT"),
            object_type_id=str(data.get("objectTypeId", "")),
            portal_id=int(data.get("portalId", 0)),
            actions=list(data.get("actions") or []),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            properties=data.get("properties"),
            object_ids=data.get("objectIds"),
            associated_object_type_ids=data.get("associatedObjectTypeIds"),
            created_by=data.get("createdBy"),
            deleted_at=data.get("deletedAt"),
        )


@dataclass(frozen=True)
class CreateSubscriptionRequest:
    object_type_id: str
    subscription_type: str
    portal_id: int
    actions: List[str]
    properties: Optional[List[str]] = None
    object_ids: Optional[List[int]] = None
    associated_object_type_ids: Optional[List[str]] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "objectTypeId": self.object_type_id,
            "subscriptionType": self.subscription_type,
            "portalId": self.portal_id,
            "actions": list(self.actions),
        }
        # empty optional filters are omitted, the API reads absence as "all"
        if self.properties:
            payload["properties"] = list(self.properties)
        if self.object_ids:
            payload["objectIds"] = list(self.object_ids)
        if self.associated_object_type_ids:
            payload["associatedObjectTypeIds"] = list(self.associated_object_type_ids)
        return payload


@dataclass(frozen=True)
class SnapshotRequest:
    portal_id: int
    object_id: int
    object_type_id: str
    properties: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "portalId": self.portal_id,
            "objectId": self.object_id,
            "objectTypeId": self.object_type_id,
            "properties": list(self.properties),
        }


# -----------------------------
# Journal
# -----------------------------
_COMMON_EVENT_KEYS = ("type", "portalId", "action", "occurredAt", "propertyChanges")
_OBJECT_EVENT_KEYS = _COMMON_EVENT_KEYS + ("objectTypeId", "objectId")
_ASSOCIATION_EVENT_KEYS = _COMMON_EVENT_KEYS + (
    "fromObjectTypeId",
    "fromObjectId",
    "toObjectTypeId",
    "toObjectId",
    "associationTypeId",
    "associationCategory",
    "isPrimary",
)


def _extra(data: Dict[str, Any], known: tuple) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


@dataclass(frozen=True)
class ObjectEvent:
    type: str
    portal_id: Optional[int]
    action: Optional[str]
    occurred_at: Optional[str]
    object_type_id: Optional[str]
    object_id: Optional[int]
    property_changes: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AssociationEvent:
    type: str
    portal_id: Optional[int]
    action: Optional[str]
    occurred_at: Optional[str]
    from_object_type_id: Optional[str]
    from_object_id: Optional[int]
    to_object_type_id: Optional[str]
    to_object_id: Optional[int]
    association_type_id: Optional[int] = None
    association_category: Optional[str] = None
    is_primary: Optional[bool] = None
    property_changes: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


JournalEvent = Union[ObjectEvent, AssociationEvent]


def parse_journal_event(data: Dict[str, Any]) -> JournalEvent:
    """Build the variant matching ``type``; anything not association is treated as an object event."""
    event_type = data.get("type") or "object"
    if event_type == "association":
        return AssociationEvent(
            type=event_type,
            portal_id=data.get("portalId"),
            action=data.get("action"),
            occurred_at=data.get("occurredAt"),
            from_object_type_id=data.get("fromObjectTypeId"),
            from_object_id=data.get("fromObjectId"),
            to_object_type_id=data.get("toObjectTypeId"),
            to_object_id=data.get("toObjectId"),
            association_type_id=data.get("associationTypeId"),
            association_category=data.get("associationCategory"),
            is_primary=data.get("isPrimary"),
            property_changes=data.get("propertyChanges"),
            extra=_extra(data, _ASSOCIATION_EVENT_KEYS),
        )
    return ObjectEvent(
        type=event_type,
        portal_id=data.get("portalId"),
        action=data.get("action"),
        occurred_at=data.get("occurredAt"),
        object_type_id=data.get("objectTypeId"),
        object_id=data.get("objectId"),
        property_changes=data.get("propertyChanges"),
        extra=_extra(data, _OBJECT_EVENT_KEYS),
    )


@dataclass(frozen=True)
class JournalPayload:
    offset: Optional[str]
    journal_events: List[JournalEvent]
    published_at: Optional[str]
    events_well_formed: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalPayload":
        events = data.get("journalEvents")
        well_formed = isinstance(events, list)
        return cls(
            offset=data.get("offset"),
            journal_events=[parse_journal_event(e) for e in events if isinstance(e, dict)] if well_formed else [],
            published_at=data.get("publishedAt"),
            events_well_formed=well_formed,
            extra=_extra(data, ("offset", "journalEvents", "publishedAt")),
            raw=dict(data),
        )


@dataclass(frozen=True)
class JournalEntry:
    url: str
    expires_at: Optional[str]
    current_offset: str
    data: Optional[JournalPayload] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            url=data["url"],
            expires_at=data.get("expiresAt"),
            current_offset=data["currentOffset"],
        )
