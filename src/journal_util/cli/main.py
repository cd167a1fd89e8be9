"""journal-util: interactive client for the HubSpot Webhooks Journal API."""

from __future__ import annotations

import logging
import sys

import typer
from rich.console import Console

from src.journal_util.cli import display
from src.journal_util.cli.shell import InteractiveShell, stream_until_interrupted
from src.journal_util.config.settings import Settings, describe_settings, get_settings
from src.journal_util.errors import AuthError, ConfigError, JournalUtilError
from src.journal_util.hubspot.api_client import ApiClient
from src.journal_util.hubspot.auth import REQUIRED_SCOPES, TokenCache
from src.journal_util.hubspot.journal import JournalApi
from src.journal_util.hubspot.models import JournalEntry
from src.journal_util.replay.journal_stream import JournalStreamer


console = Console()
app = typer.Typer(
    name="journal-util",
    help="Manage webhook subscriptions, request snapshots and read the event journal.",
)

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_settings() -> Settings:
    try:
        settings = get_settings()
    except ConfigError as e:
        console.print("[red]❌ Configuration Error:[/red]")
        console.print(str(e), markup=False)
        console.print("\n💡 Getting started:")
        console.print("   1. Copy env.template to .env")
        console.print("   2. Fill in your HubSpot OAuth credentials")
        console.print("   3. Run the CLI again")
        raise typer.Exit(code=1)

    configure_logging(settings.debug)
    if settings.debug:
        console.print("📊 Configuration loaded:")
        for line in describe_settings(settings):
            console.print(f"  {line}")
    return settings


def _token_cache(settings: Settings) -> TokenCache:
    return TokenCache(settings.oauth_token_url, settings.client_id, settings.client_secret)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Start the interactive shell when no command is given."""
    if ctx.invoked_subcommand is None:
        shell()


@app.command("shell")
def shell() -> None:
    """Menu-driven access to subscriptions, snapshots and the journal."""
    console.print("🚀 HubSpot Webhooks Journal API CLI")
    console.print("===================================")
    settings = _load_settings()
    display.success(console, "Configuration loaded successfully!")

    try:
        InteractiveShell(settings, _token_cache(settings), console=console).start()
    except (KeyboardInterrupt, EOFError):
        console.print("\n👋 Goodbye!")
    except Exception as e:
        logger.exception("Unexpected error")
        console.print("[red]❌ Unexpected Error:[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(code=1)


@app.command("stream")
def stream() -> None:
    """Stream new journal entries until Ctrl+C."""
    console.print("🌊 HubSpot Journal Stream - Real-time Event Monitor")
    console.print("==================================================")
    settings = _load_settings()
    token_cache = _token_cache(settings)

    console.print("🔐 Authenticating...")
    try:
        token_cache.get_token()
    except AuthError as e:
        display.api_error(console, e)
        console.print("\n💡 Make sure your .env file has valid HUBSPOT_CLIENT_ID and HUBSPOT_CLIENT_SECRET")
        raise typer.Exit(code=1)
    display.success(console, "Authentication successful")

    journal_api = JournalApi(ApiClient(settings.api_base_url, token_cache))
    console.print("\n🚀 Starting journal stream...")
    console.print("📋 Rate limit: 30 requests/minute (polls every 2 seconds)")
    console.print("💡 Press Ctrl+C to stop streaming\n")
    console.print(display.RULE)

    totals = {"entries": 0, "events": 0}

    def on_entry(entry: JournalEntry) -> None:
        totals["entries"] += 1
        totals["events"] += display.streamed_entry(console, entry, totals["entries"])

    def on_error(error: Exception) -> None:
        console.print(f"\n❌ Error: {error}", markup=False)

    def on_status(status: str) -> None:
        # only the milestones, keep the stream readable
        if "Starting stream" in status or "Rate limit" in status or "stopped" in status:
            display.info(console, status)

    try:
        stream_until_interrupted(JournalStreamer(journal_api), on_entry, on_error, on_status)
    except JournalUtilError as e:
        display.api_error(console, e)
        raise typer.Exit(code=1)

    console.print("\n📊 Stream Summary:")
    console.print(f"   Journal Entries: {totals['entries']}")
    console.print(f"   Total Events: {totals['events']}")
    display.success(console, "Stream stopped gracefully")


@app.command("test-auth")
def test_auth() -> None:
    """Exercise the token cache: fetch, reuse, refresh, clear."""
    console.print("🔐 Authentication Test")
    console.print("====================")
    settings = _load_settings()
    token_cache = _token_cache(settings)

    try:
        console.print("1. Testing initial token fetch...")
        first = token_cache.get_token().access_token
        console.print(f"   ✅ Token obtained: {first[:16]}...")
        console.print(f"   Requested scopes: {', '.join(token_cache.required_scopes)}")

        console.print("2. Testing cached token retrieval...")
        second = token_cache.get_token().access_token
        console.print(f"   ✅ Token retrieved: {second[:16]}...")
        console.print(f"   Same token? {'Yes' if first == second else 'No'}")

        console.print("3. Testing token info...")
        token_info = token_cache.token_info()
        console.print(f"   Has token: {token_info.has_token}")
        console.print(f"   Is expired: {token_info.is_expired}")
        console.print(f"   Expires in: {token_info.expires_in_seconds} seconds")

        console.print("4. Testing forced refresh...")
        third = token_cache.force_refresh().access_token
        console.print(f"   ✅ New token obtained: {third[:16]}...")
        console.print(f"   Different token? {'Yes' if first != third else 'No'}")

        console.print("5. Testing token clear...")
        token_cache.clear()
        console.print(f"   Has token after clear: {token_cache.token_info().has_token}")

        console.print("6. Testing token re-fetch after clear...")
        fourth = token_cache.get_token().access_token
        console.print(f"   ✅ Token re-obtained: {fourth[:16]}...")
    except AuthError as e:
        display.api_error(console, e)
        raise typer.Exit(code=1)

    display.success(console, "All authentication tests passed!")


@app.command("scopes")
def scopes() -> None:
    """Print the OAuth scopes the app must be granted."""
    console.print("📋 Required OAuth Scopes for your HubSpot App:")
    for scope in REQUIRED_SCOPES:
        console.print(f"  • {scope}")
    console.print("\n💡 Add these scopes to your OAuth app in the HubSpot Developer portal.")


if __name__ == "__main__":
    app()
