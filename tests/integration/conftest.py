"""
Integration test fixtures for Burnout Guard.

Provides fixtures specific to integration testing:
- The FastAPI application wired to in-process fakes
- A TestClient that runs the application lifespan
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from burnout_guard.config import BurnoutGuardConfig, DescopeCredentials
from burnout_guard.protection.orchestrator import ProtectionOrchestrator
from burnout_guard.providers.descope import DescopeClient
from burnout_guard.server.app import create_app
from burnout_guard.users.store import InMemoryUserStore
from tests.fakes import CalendarDirectory, FakeTokenProvider


# ─────────────────────────────────────────────────────────────────────────────
# Application Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def app_config() -> BurnoutGuardConfig:
    """Config with the periodic loop disabled so tests drive runs themselves."""
    return BurnoutGuardConfig.model_validate({"scheduler": {"enabled": False}})


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore(["alice"])


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def calendars() -> CalendarDirectory:
    return CalendarDirectory()


@pytest.fixture
def descope_client() -> MagicMock:
    """Descope client with the OAuth calls mocked out."""
    client = MagicMock(spec=DescopeClient)
    client.start_oauth = AsyncMock(return_value="https://accounts.google.com/o/oauth2/auth?state=xyz")
    client.exchange_code = AsyncMock(return_value="bob")
    return client


@pytest.fixture
def app(app_config, user_store, token_provider, calendars, descope_client, now, tz):
    orchestrator = ProtectionOrchestrator(
        token_provider,
        calendars,
        user_store,
        config=app_config.protection,
        clock=lambda: now,
        tz=tz,
    )
    return create_app(
        app_config,
        credentials=DescopeCredentials(project_id="P1", management_key="K1", outbound_app_id="gcal"),
        descope_client=descope_client,
        user_store=user_store,
        orchestrator=orchestrator,
    )


@pytest.fixture
def test_client(app) -> Generator[TestClient, None, None]:
    """Test client with the application lifespan running."""
    with TestClient(app) as client:
        yield client
