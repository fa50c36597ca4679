"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import json
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from phonetree_scout.calls.registry import CallRegistry, get_call_registry
from phonetree_scout.crm.client import CallNote, get_hubspot_client
from phonetree_scout.crm.exceptions import CrmError
from phonetree_scout.telephony.adapters.mock import MockTelephonyProvider
from phonetree_scout.telephony.config import ProviderType, TelephonyConfig
from phonetree_scout.telephony.factory import get_telephony_config
from phonetree_scout.telephony.webhooks import router as twilio_router

BASE_URL = "https://scout.example.com"


class RecordingObserver:
    """In-memory ObserverTransport that keeps every message it is handed."""

    def __init__(self, open_: bool = True, accept: bool = True) -> None:
        self.open = open_
        self.accept = accept
        self.messages: list[str] = []

    def is_open(self) -> bool:
        return self.open

    def try_send(self, message: str) -> bool:
        if not self.accept:
            return False
        self.messages.append(message)
        return True

    @property
    def events(self) -> list[dict[str, Any]]:
        return [json.loads(m) for m in self.messages]


class FakeClock:
    """Deterministic clock for registry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeHubSpotClient:
    """Stands in for HubSpotClient in route tests."""

    def __init__(self) -> None:
        self.companies: dict[str, dict[str, Any]] = {}
        self.notes: list[CallNote] = []
        self.fail_notes = False

    async def get_company(self, company_id: str) -> dict[str, Any]:
        if company_id not in self.companies:
            raise CrmError("Object not found", status_code=404)
        return self.companies[company_id]

    async def log_call_note(self, note: CallNote) -> dict[str, Any]:
        if self.fail_notes:
            raise CrmError("HubSpot unavailable", status_code=503)
        self.notes.append(note)
        return {"id": f"note-{len(self.notes)}"}

    async def aclose(self) -> None:
        return None


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> CallRegistry:
    return CallRegistry(clock=clock)


@pytest.fixture
def telephony_config() -> TelephonyConfig:
    return TelephonyConfig(
        provider_type=ProviderType.MOCK,
        twilio_account_sid="AC_TEST_ACCOUNT_SID",
        twilio_auth_token="test_auth_token_12345",
        twilio_from_number="+14155550000",
        webhook_base_url=BASE_URL,
    )


@pytest.fixture
def mock_provider(telephony_config: TelephonyConfig) -> MockTelephonyProvider:
    return MockTelephonyProvider(telephony_config)


@pytest.fixture
def hubspot() -> FakeHubSpotClient:
    return FakeHubSpotClient()


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    registry: CallRegistry,
    mock_provider: MockTelephonyProvider,
    hubspot: FakeHubSpotClient,
    telephony_config: TelephonyConfig,
) -> Generator[TestClient, None, None]:
    monkeypatch.setenv("BASE_URL", BASE_URL)

    from phonetree_scout.main import create_app

    app = create_app()
    app.dependency_overrides[get_call_registry] = lambda: registry
    app.dependency_overrides[twilio_router.get_telephony_provider] = lambda: mock_provider
    app.dependency_overrides[get_hubspot_client] = lambda: hubspot
    app.dependency_overrides[get_telephony_config] = lambda: telephony_config

    with TestClient(app) as test_client:
        yield test_client
