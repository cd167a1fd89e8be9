"""Console rendering for subscriptions, journal entries and errors"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional

from rich.console import Console
from rich.table import Table

from src.journal_util.errors import ApiClientError, AuthError, LinkExpiredError, NoContentError
from src.journal_util.hubspot.models import (
    AssociationEvent,
    JournalEntry,
    JournalEvent,
    Subscription,
    format_object_type_name,
)
from src.journal_util.hubspot.subscriptions import PortalDeleteReport


RULE = "─" * 64
LATEST_OFFSET_NOTICE = "You are already on the latest offset."
LEGACY_EVENT_KEYS = ("associatedObjectId", "associatedObjectTypeId", "associationType")


def format_timestamp(value: Any) -> str:
    """ISO strings and epoch milliseconds both show up in journal payloads"""
    if value is None or value == "":
        return "N/A"
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, OverflowError, OSError):
        return str(value)


def short_offset(offset: Optional[str], length: int = 12) -> str:
    return f"{(offset or '')[:length]}..."


def success(console: Console, message: str) -> None:
    console.print(f"[green]✅ {message}[/green]")


def info(console: Console, message: str) -> None:
    console.print(f"ℹ️  {message}")


def warning(console: Console, message: str) -> None:
    console.print(f"[yellow]⚠️  {message}[/yellow]")


def api_error(console: Console, error: BaseException) -> None:
    """Status code, message, correlation id and category, without a traceback"""
    if isinstance(error, NoContentError):
        info(console, LATEST_OFFSET_NOTICE)
        return
    if isinstance(error, LinkExpiredError):
        console.print(f"[red]❌ {error}[/red]")
        console.print("   Request the entry again to get a fresh link.")
        return

    console.print("[red]❌ API Error occurred:[/red]", highlight=False)
    status_code = getattr(error, "status_code", None)
    if status_code:
        console.print(f"   Status Code: {status_code}")
    console.print(f"   Message: {getattr(error, 'message', None) or error}", markup=False)
    if isinstance(error, (ApiClientError, AuthError)):
        if error.correlation_id:
            console.print(f"   Correlation ID: {error.correlation_id}")
        if error.category:
            console.print(f"   Category: {error.category}")


def subscription(console: Console, sub: Subscription) -> None:
    console.print(f"📋 Subscription ID: {sub.id}", markup=False)
    console.print(f"   App ID: {sub.app_id}", markup=False)
    console.print(f"   Type: {sub.subscription_type}", markup=False)
    console.print(f"   Object Type: {sub.object_type_id} ({format_object_type_name(sub.object_type_id)})", markup=False)
    console.print(f"   Portal ID: {sub.portal_id}", markup=False)
    console.print(f"   Actions: {', '.join(sub.actions)}", markup=False)
    if sub.properties:
        console.print(f"   Properties: {', '.join(sub.properties)}", markup=False)
    if sub.object_ids:
        console.print(f"   Object IDs: {', '.join(str(i) for i in sub.object_ids)}", markup=False)
    if sub.associated_object_type_ids:
        console.print(f"   Associated Types: {', '.join(sub.associated_object_type_ids)}", markup=False)
    console.print(f"   Created: {format_timestamp(sub.created_at)}", markup=False)
    console.print(f"   Updated: {format_timestamp(sub.updated_at)}", markup=False)


def subscriptions(console: Console, subs: List[Subscription], portal_filter: Optional[int] = None) -> None:
    suffix = f" for portal {portal_filter}" if portal_filter else ""
    if not subs:
        console.print(f"📋 No subscriptions found{suffix}.")
        return

    table = Table(title=f"Found {len(subs)} subscription(s){suffix}")
    for column in ("ID", "Type", "Object Type", "Portal", "Actions", "Updated"):
        table.add_column(column)
    for sub in subs:
        table.add_row(
            str(sub.id),
            sub.subscription_type,
            format_object_type_name(sub.object_type_id),
            str(sub.portal_id),
            ", ".join(sub.actions),
            format_timestamp(sub.updated_at),
        )
    console.print(table)


def portal_delete_report(console: Console, report: PortalDeleteReport) -> None:
    if not report.used_fallback:
        success(console, f"All subscriptions for portal {report.portal_id} deleted successfully!")
        return

    warning(console, "Bulk delete failed, subscriptions were deleted individually")
    if not report.outcomes:
        console.print(f"📋 No subscriptions found for portal {report.portal_id}")
        return
    for sub_id, err in report.outcomes:
        if err is None:
            console.print(f"   ✅ Deleted subscription {sub_id}")
        else:
            console.print(f"   ❌ Failed to delete subscription {sub_id}: {err}", markup=False)
    console.print(f"   {len(report.deleted)} deleted, {len(report.failed)} failed")


def _value(value: Any, limit: Optional[int] = None) -> str:
    if isinstance(value, str) and limit and len(value) > limit:
        return f"{value[:limit]}..."
    return json.dumps(value, default=str)


def journal_event(console: Console, event: JournalEvent, index: int, value_limit: Optional[int] = None) -> None:
    console.print(f"   {index}. Event Type: {event.type}", markup=False)
    console.print(f"      Portal ID: {event.portal_id}", markup=False)
    console.print(f"      Action: {event.action or 'N/A'}", markup=False)
    console.print(f"      Occurred At: {format_timestamp(event.occurred_at)}", markup=False)

    if isinstance(event, AssociationEvent):
        console.print(f"      From Object Type: {event.from_object_type_id}", markup=False)
        console.print(f"      From Object ID:   {event.from_object_id}", markup=False)
        console.print(f"      To Object Type:   {event.to_object_type_id}", markup=False)
        console.print(f"      To Object ID:     {event.to_object_id}", markup=False)
        if event.association_type_id is not None:
            console.print(f"      Association Type ID: {event.association_type_id}", markup=False)
        if event.association_category is not None:
            console.print(f"      Association Category: {event.association_category}", markup=False)
        if event.is_primary is not None:
            console.print(f"      Is Primary: {event.is_primary}", markup=False)
    else:
        type_name = format_object_type_name(event.object_type_id) if event.object_type_id else "Unknown"
        console.print(f"      Object Type: {event.object_type_id} ({type_name})", markup=False)
        console.print(f"      Object ID: {event.object_id}", markup=False)

    if event.property_changes:
        console.print("      Property Changes:")
        for prop, value in event.property_changes.items():
            console.print(f"        {prop}: {_value(value, value_limit)}", markup=False)

    extra = dict(event.extra)
    if extra.get("associatedObjectId"):
        console.print(f"      Associated Object ID: {extra['associatedObjectId']}", markup=False)
        if extra.get("associatedObjectTypeId"):
            type_id = extra["associatedObjectTypeId"]
            console.print(f"      Associated Object Type: {type_id} ({format_object_type_name(type_id)})", markup=False)
    if extra.get("associationType"):
        console.print(f"      Association Type: {extra['associationType']}", markup=False)

    additional = {k: v for k, v in extra.items() if k not in LEGACY_EVENT_KEYS}
    if additional:
        console.print("      Additional Properties:")
        for key, value in additional.items():
            console.print(f"        {key}: {_value(value)}", markup=False)


def journal_entry(console: Console, entry: JournalEntry, show_raw: bool = False) -> None:
    console.print("📚 Journal Entry:")
    console.print(f"   Current Offset: {entry.current_offset}", markup=False)
    console.print(f"   Expires At: {format_timestamp(entry.expires_at)}", markup=False)
    console.print("")

    data = entry.data
    if show_raw and data is not None:
        console.print("🔍 Debug - Raw data structure:")
        console.print_json(data=data.raw)
        console.print("")

    console.print("📋 Journal Data:")
    if data is None:
        console.print("   ❌ No data available")
        return

    if not data.events_well_formed:
        console.print("   ❌ Events data is not in expected format")
        console.print(f"   📋 Available data keys: {', '.join(data.raw.keys())}", markup=False)
        console.print_json(data=data.raw)
        return

    console.print(f"   Events: {len(data.journal_events)}", markup=False)
    console.print(f"   Published At: {format_timestamp(data.published_at)}", markup=False)
    console.print(f"   Data Offset: {data.offset}", markup=False)
    console.print("")

    if not data.journal_events:
        console.print("   No events found in this journal entry.")
        return

    console.print("🎯 Events:")
    for index, event in enumerate(data.journal_events, start=1):
        journal_event(console, event, index)
        if index < len(data.journal_events):
            console.print("      " + "─" * 50)


def streamed_entry(console: Console, entry: JournalEntry, number: int) -> int:
    """Compact form used while streaming; returns the number of events shown"""
    console.print(f"\n📄 New Journal Entry #{number} [{datetime.now().strftime('%H:%M:%S')}]")
    console.print(f"   Offset: {short_offset(entry.current_offset, 8)}", markup=False)
    console.print(f"   Expires: {format_timestamp(entry.expires_at)}", markup=False)

    data = entry.data
    if data is None or not data.events_well_formed:
        warning(console, "No events data found")
        console.print(RULE)
        return 0

    console.print(f"   Events: {len(data.journal_events)}", markup=False)
    console.print(f"   Published: {format_timestamp(data.published_at)}", markup=False)
    console.print("")
    for index, event in enumerate(data.journal_events, start=1):
        journal_event(console, event, index, value_limit=100)
    console.print(RULE)
    return len(data.journal_events)
