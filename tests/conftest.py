"""Pytest configuration shared across the suite."""

from __future__ import annotations

import pytest

from src.journal_util.hubspot.auth import TokenCache

from tests._fakes import FakeSession, token_response


@pytest.fixture
def token_session() -> FakeSession:
    return FakeSession([token_response(f"token-{i}") for i in range(1, 6)])


@pytest.fixture
def token_cache(token_session: FakeSession) -> TokenCache:
    return TokenCache(
        "https://auth.example/oauth/v1/token",
        "client-id",
        "client-secret",
        session=token_session,
        clock=lambda: 1_700_000_000_000,
    )
