from __future__ import annotations

from typer.testing import CliRunner

from src.journal_util.cli.main import app
from src.journal_util.config import settings as settings_module
from src.journal_util.hubspot.auth import REQUIRED_SCOPES


runner = CliRunner()


def test_scopes_lists_required_scopes() -> None:
    result = runner.invoke(app, ["scopes"])

    assert result.exit_code == 0
    for scope in REQUIRED_SCOPES:
        assert scope in result.output


def test_missing_configuration_exits_with_guidance(monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: False)
    for name in settings_module.REQUIRED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    settings_module.reset_settings()

    result = runner.invoke(app, ["test-auth"])

    assert result.exit_code == 1
    assert "Configuration Error" in result.output
    assert "HUBSPOT_CLIENT_ID" in result.output
    settings_module.reset_settings()
