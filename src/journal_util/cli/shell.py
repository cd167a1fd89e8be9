from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.prompt import Confirm, Prompt

from src.journal_util.cli import display
from src.journal_util.cli.signals import install_signal_handlers, restore_signal_handlers
from src.journal_util.config.settings import Settings, validate_portal_id
from src.journal_util.errors import AuthError, ConfigError, JournalUtilError, NoContentError
from src.journal_util.hubspot.api_client import ApiClient
from src.journal_util.hubspot.auth import TokenCache
from src.journal_util.hubspot.journal import JournalApi
from src.journal_util.hubspot.models import (
    ACTIONS_BY_SUBSCRIPTION_TYPE,
    OBJECT_TYPE_IDS,
    SUBSCRIPTION_ACTIONS,
    CreateSubscriptionRequest,
    JournalEntry,
    SnapshotRequest,
    describe_action,
    format_object_type_name,
)
from src.journal_util.hubspot.snapshots import SnapshotsApi
from src.journal_util.hubspot.subscriptions import SubscriptionsApi
from src.journal_util.replay.journal_stream import JournalStreamer


logger = logging.getLogger(__name__)


def stream_until_interrupted(
    streamer: JournalStreamer,
    on_entry: Callable[[JournalEntry], None],
    on_error: Callable[[Exception], None],
    on_status: Callable[[str], None],
) -> None:
    """Run the journal stream until Ctrl+C / SIGTERM, restoring the previous handlers afterwards"""
    stop = threading.Event()
    previous = install_signal_handlers(stop)
    try:
        handle = streamer.start_streaming(on_entry, on_error, on_status, cancel=stop)
        try:
            while handle.is_running:
                stop.wait(1.0)
        except KeyboardInterrupt:
            stop.set()
        finally:
            handle.stop()
            handle.join(timeout=35)
    finally:
        restore_signal_handlers(previous)


def parse_id_list(text: str) -> List[int]:
    """Comma-separated positive integers; raises ConfigError on anything else"""
    ids = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            raise ConfigError(f"Not a valid ID: {part}") from None
        if value <= 0:
            raise ConfigError(f"IDs must be positive numbers: {part}")
        ids.append(value)
    return ids


def parse_csv(text: str) -> List[str]:
    return [p.strip() for p in text.split(",") if p.strip()]


class InteractiveShell:
    """Menu-driven front end over the subscriptions, snapshots and journal clients"""

    def __init__(
        self,
        settings: Settings,
        token_cache: TokenCache,
        api_client: Optional[ApiClient] = None,
        console: Optional[Console] = None,
    ):
        self.settings = settings
        self.token_cache = token_cache
        self.console = console or Console()
        api_client = api_client or ApiClient(settings.api_base_url, token_cache)
        self.subscriptions_api = SubscriptionsApi(api_client)
        self.snapshots_api = SnapshotsApi(api_client)
        self.journal_api = JournalApi(api_client)
        self.authenticated = False

    # -----------------------------
    # Prompt helpers
    # -----------------------------
    def _choose(self, title: str, options: Sequence[Tuple[str, str]], default: Optional[str] = None) -> str:
        self.console.print(f"\n[bold]{title}[/bold]")
        for number, (_, label) in enumerate(options, start=1):
            self.console.print(f"  {number}. {label}")
        keys = [str(n) for n in range(1, len(options) + 1)]
        default_number = None
        if default is not None:
            default_number = str([key for key, _ in options].index(default) + 1)
        answer = Prompt.ask("Select", choices=keys, default=default_number, console=self.console, show_choices=False)
        return options[int(answer) - 1][0]

    def _ask(self, message: str, default: str = "") -> str:
        return Prompt.ask(message, default=default, console=self.console, show_default=bool(default)).strip()

    def _confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, default=default, console=self.console)

    def _pause(self) -> None:
        Prompt.ask("Press Enter to continue", default="", show_default=False, console=self.console)

    def _ask_portal_id(self, message: str = "Enter the portal ID") -> int:
        while True:
            answer = self._ask(message, default=self.settings.usable_default_portal_id or "")
            try:
                return validate_portal_id(answer)
            except ConfigError:
                display.warning(self.console, "Please enter a valid portal ID (positive number)")

    def _ask_portal_filter(self, current: Optional[int]) -> Optional[int]:
        default = str(current) if current else (self.settings.usable_default_portal_id or "")
        while True:
            answer = self._ask("Enter portal ID to filter by (leave empty for all portals)", default=default)
            if not answer:
                return None
            try:
                return validate_portal_id(answer)
            except ConfigError:
                display.warning(self.console, "Please enter a valid portal ID (positive number) or leave empty")

    def _ask_ids(self, message: str, required: bool) -> List[int]:
        while True:
            try:
                ids = parse_id_list(self._ask(message))
            except ConfigError as e:
                display.warning(self.console, str(e))
                continue
            if ids or not required:
                return ids
            display.warning(self.console, "Please enter at least one object ID")

    def _ask_object_type_id(self) -> str:
        options = [(type_id, f"{name} ({type_id})") for name, type_id in OBJECT_TYPE_IDS.items()]
        options.append(("custom", "Custom object type (enter manually)"))
        choice = self._choose("Select object type:", options)
        if choice != "custom":
            return choice
        while True:
            custom = self._ask("Enter custom object type ID")
            if custom:
                return custom
            display.warning(self.console, "Object type ID cannot be empty")

    def _ask_actions(self, subscription_type: str) -> List[str]:
        valid = ACTIONS_BY_SUBSCRIPTION_TYPE[subscription_type]
        for action in valid:
            self.console.print(f"  • {action} - {describe_action(action)}")
        while True:
            picked = [a.upper() for a in parse_csv(self._ask(f"Actions for {subscription_type} subscription (comma-separated)"))]
            unknown = [a for a in picked if a not in SUBSCRIPTION_ACTIONS]
            wrong_type = [a for a in picked if a in SUBSCRIPTION_ACTIONS and a not in valid]
            if picked and not unknown and not wrong_type:
                return picked
            if unknown:
                display.warning(self.console, f"Unknown action(s): {', '.join(unknown)}")
            elif wrong_type:
                display.warning(
                    self.console, f"Not valid for {subscription_type} subscriptions: {', '.join(wrong_type)}"
                )
            else:
                display.warning(self.console, "Please select at least one action")

    def _require_auth(self) -> bool:
        if self.authenticated:
            return True
        display.warning(self.console, "Authentication required for API calls")
        return False

    # -----------------------------
    # Entry
    # -----------------------------
    def authenticate(self) -> bool:
        if self.settings.has_placeholder_credentials:
            display.warning(self.console, "Please update your .env file with actual HubSpot OAuth credentials")
            self.console.print("   API calls will fail until credentials are provided.")
            return False

        self.console.print("🔐 Testing authentication...")
        try:
            self.token_cache.get_token()
        except AuthError as e:
            self.console.print("[red]❌ Authentication failed:[/red]")
            display.api_error(self.console, e)
            self.console.print("💡 You can still explore the menus, but API calls will fail until authentication is resolved.")
            return False
        display.success(self.console, "Authentication successful!")
        self.authenticated = True
        return True

    def start(self) -> None:
        self.authenticate()
        handlers = {
            "subscriptions": self.subscriptions_menu,
            "snapshots": self.snapshots_menu,
            "journal": self.journal_menu,
        }
        while True:
            choice = self._choose(
                "🎯 Main Menu",
                [
                    ("subscriptions", "📋 Subscriptions - manage webhook subscriptions"),
                    ("snapshots", "📸 Snapshots - request CRM object snapshots"),
                    ("journal", "📚 Journal - read and stream journal entries"),
                    ("exit", "🚪 Exit"),
                ],
            )
            if choice == "exit":
                self.console.print("👋 Goodbye!")
                return
            handlers[choice]()

    def _run_action(self, action: Callable[[], None]) -> None:
        """Run one menu action; API failures are shown and control returns to the menu"""
        if not self._require_auth():
            self._pause()
            return
        try:
            action()
        except JournalUtilError as e:
            logger.debug("Action failed: %r", e)
            self.console.print("")
            display.api_error(self.console, e)
        self._pause()

    # -----------------------------
    # Subscriptions
    # -----------------------------
    def subscriptions_menu(self) -> None:
        while True:
            choice = self._choose(
                "📋 Subscriptions",
                [
                    ("list", "📄 List subscriptions"),
                    ("create", "➕ Create subscription"),
                    ("delete", "🗑️  Delete subscription"),
                    ("delete-portal", "💥 Delete all subscriptions for a portal"),
                    ("back", "⬅️  Back to main menu"),
                ],
            )
            if choice == "back":
                return
            if choice == "list":
                if self._require_auth():
                    self.list_subscriptions()
                else:
                    self._pause()
            elif choice == "create":
                self._run_action(self.create_subscription)
            elif choice == "delete":
                self._run_action(self.delete_subscription)
            elif choice == "delete-portal":
                self._run_action(self.delete_portal_subscriptions)

    def list_subscriptions(self) -> None:
        portal_filter: Optional[int] = None
        action = "change-filter"
        while action != "back":
            if action == "change-filter":
                portal_filter = self._ask_portal_filter(portal_filter)
            self.console.print("\n🔄 Fetching subscriptions...")
            try:
                subs = self.subscriptions_api.list_subscriptions()
                if portal_filter:
                    subs = [s for s in subs if s.portal_id == portal_filter]
                display.subscriptions(self.console, subs, portal_filter)
            except JournalUtilError as e:
                display.api_error(self.console, e)
            action = self._choose(
                "What would you like to do?",
                [("refresh", "🔄 Refresh list"), ("change-filter", "🔍 Change portal filter"), ("back", "⬅️  Back")],
            )

    def create_subscription(self) -> None:
        self.console.print("\n➕ Create New Subscription")
        portal_id = self._ask_portal_id("Enter the portal ID for this subscription")
        object_type_id = self._ask_object_type_id()
        subscription_type = self._choose(
            "Select subscription type:",
            [
                ("OBJECT", "OBJECT - Subscribe to object lifecycle events"),
                ("ASSOCIATION", "ASSOCIATION - Subscribe to association events"),
            ],
        )
        actions = self._ask_actions(subscription_type)
        properties: List[str] = []
        if subscription_type == "OBJECT":
            properties = parse_csv(self._ask("Enter property names (comma-separated, optional)"))
        object_ids = self._ask_ids(
            "Enter specific object IDs to subscribe to (comma-separated, leave empty for all objects)",
            required=False,
        )

        request = CreateSubscriptionRequest(
            object_type_id=object_type_id,
            subscription_type=subscription_type,
            portal_id=portal_id,
            actions=actions,
            properties=properties or None,
            object_ids=object_ids or None,
        )
        self.console.print("\n🔄 Creating subscription...")
        created = self.subscriptions_api.create_subscription(request)

        display.success(self.console, "Subscription created successfully!")
        display.subscription(self.console, created)
        if not created.object_ids:
            self.console.print("   Object IDs: All objects (no filter)")

    def delete_subscription(self) -> None:
        subscription_id = self._ask_ids("Enter the subscription ID to delete", required=True)[0]
        if not self._confirm(f"Are you sure you want to delete subscription {subscription_id}?"):
            display.info(self.console, "Deletion cancelled.")
            return
        self.console.print("\n🔄 Deleting subscription...")
        self.subscriptions_api.delete_subscription(subscription_id)
        display.success(self.console, f"Subscription {subscription_id} deleted successfully!")

    def delete_portal_subscriptions(self) -> None:
        portal_id = self._ask_portal_id()
        if not self._confirm(
            f"Are you sure you want to delete ALL subscriptions for portal {portal_id}? This cannot be undone."
        ):
            display.info(self.console, "Deletion cancelled.")
            return
        self.console.print("\n🔄 Deleting all portal subscriptions...")
        report = self.subscriptions_api.delete_portal_subscriptions(portal_id)
        display.portal_delete_report(self.console, report)

    # -----------------------------
    # Snapshots
    # -----------------------------
    def snapshots_menu(self) -> None:
        while True:
            choice = self._choose(
                "📸 Snapshots",
                [("create", "📸 Create snapshots"), ("back", "⬅️  Back to main menu")],
            )
            if choice == "back":
                return
            self._run_action(self.create_snapshots)

    def create_snapshots(self) -> None:
        self.console.print("\n📸 Create New Snapshots")
        portal_id = self._ask_portal_id()
        object_type_id = self._ask_object_type_id()
        object_ids = self._ask_ids("Enter object IDs (comma-separated)", required=True)
        properties = parse_csv(self._ask("Enter property names (comma-separated, optional)"))

        snapshot_requests = [SnapshotRequest(portal_id, object_id, object_type_id, properties) for object_id in object_ids]
        self.console.print("\n🔄 Creating snapshots...")
        self.snapshots_api.create_snapshots(snapshot_requests)

        display.success(self.console, "Snapshots created successfully!")
        self.console.print(f"📸 Created {len(snapshot_requests)} snapshot(s) for:")
        self.console.print(f"   Portal ID: {portal_id}")
        self.console.print(f"   Object Type: {format_object_type_name(object_type_id)}")
        self.console.print(f"   Object IDs: {', '.join(str(i) for i in object_ids)}")
        self.console.print(f"   Properties: {', '.join(properties) if properties else '*'}")

    # -----------------------------
    # Journal
    # -----------------------------
    def journal_menu(self) -> None:
        handlers = {
            "earliest": self.show_earliest_entry,
            "latest": self.show_latest_entry,
            "next": self.show_next_entry,
            "stream": self.stream_entries,
        }
        while True:
            choice = self._choose(
                "📚 Journal",
                [
                    ("earliest", "⏮️  Get earliest journal entry"),
                    ("latest", "⏭️  Get latest journal entry"),
                    ("next", "➡️  Get next journal entry by offset"),
                    ("stream", "🌊 Stream journal entries"),
                    ("back", "⬅️  Back to main menu"),
                ],
            )
            if choice == "back":
                return
            self._run_action(handlers[choice])

    def _show_entry(self, entry: JournalEntry, label: str) -> None:
        self.console.print("📥 Downloaded journal data successfully!")
        display.success(self.console, f"Retrieved {label} journal entry with data!")
        display.journal_entry(self.console, entry, show_raw=self.settings.debug and self.settings.debug_journal)

    def _offer_next(self, offset: str) -> None:
        """Keep walking forward from ``offset`` while the operator asks for it"""
        while True:
            choice = self._choose(
                "What would you like to do next?",
                [
                    ("next", f"➡️  Get next journal entry from offset: {display.short_offset(offset)}"),
                    ("back", "⬅️  Back to journal menu"),
                ],
            )
            if choice == "back":
                return
            entry = self.fetch_next(offset)
            if entry is None:
                return
            offset = entry.current_offset

    def fetch_next(self, offset: str) -> Optional[JournalEntry]:
        """Fetch and show the entry after ``offset``; None when already at the latest one"""
        self.console.print("\n🔄 Fetching next journal entry...")
        try:
            entry = self.journal_api.get_next(offset)
        except NoContentError:
            display.info(self.console, display.LATEST_OFFSET_NOTICE)
            return None
        self._show_entry(entry, "next")
        return entry

    def show_earliest_entry(self) -> None:
        self.console.print("\n🔄 Fetching earliest journal entry...")
        entry = self.journal_api.get_earliest()
        self._show_entry(entry, "earliest")
        self._offer_next(entry.current_offset)

    def show_latest_entry(self) -> None:
        self.console.print("\n🔄 Fetching latest journal entry...")
        entry = self.journal_api.get_latest()
        self._show_entry(entry, "latest")
        self._offer_next(entry.current_offset)

    def show_next_entry(self) -> None:
        while True:
            offset = self._ask("Enter the journal offset UUID")
            if offset:
                break
            display.warning(self.console, "Please enter a valid offset UUID")
        entry = self.fetch_next(offset)
        if entry is not None:
            self._offer_next(entry.current_offset)

    def stream_entries(self) -> None:
        self.console.print("\n🌊 Stream Journal Entries")
        self.console.print("This will stream new journal entries as they are published.")
        self.console.print("Rate limiting: Max 30 requests per minute (HubSpot limit: 100/min)")
        self.console.print("💡 Press Ctrl+C to stop streaming at any time")
        if not self._confirm("Start streaming journal entries?", default=True):
            return

        self.console.print("\n🚀 Starting journal stream...")
        self.console.print(display.RULE)
        count = 0

        def on_entry(entry: JournalEntry) -> None:
            nonlocal count
            count += 1
            display.streamed_entry(self.console, entry, count)

        def on_error(error: Exception) -> None:
            self.console.print(f"\n❌ Stream error: {error}", markup=False)

        def on_status(status: str) -> None:
            display.info(self.console, status)

        stream_until_interrupted(JournalStreamer(self.journal_api), on_entry, on_error, on_status)
        display.success(self.console, f"Stream completed. Total entries received: {count}")
