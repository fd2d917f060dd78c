"""Pytest configuration and fixtures for lam-engine tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lam_engine.actions.base import ActionContext
from lam_engine.config import EngineSettings
from lam_engine.engine import build_engine
from lam_engine.gateways import EmailGateway, SmsGateway
from lam_engine.store import CONTACTS, InMemoryRepository

from helpers import TENANT, FakeClock


@pytest.fixture
def engine_settings():
    """Provide test engine settings."""
    return EngineSettings(
        log_level="DEBUG",
        metrics_enabled=False,
        undo_window_seconds=60,
        action_execution_timeout=5,
    )


@pytest.fixture
def clock():
    """Provide a controllable monotonic clock."""
    return FakeClock()


@pytest.fixture
def store():
    """Provide an empty in-memory repository."""
    return InMemoryRepository()


@pytest.fixture
def context():
    """Provide an action context inside a run."""
    return ActionContext(tenant_id=TENANT, run_id="run-1")


@pytest.fixture
def mock_sms():
    """Provide a mocked SMS gateway."""
    gateway = MagicMock(spec=SmsGateway)
    gateway.from_number = "+15550000000"
    gateway.send = AsyncMock(return_value="SM0001")
    gateway.close = AsyncMock()
    return gateway


@pytest.fixture
def mock_email():
    """Provide a mocked email gateway."""
    gateway = MagicMock(spec=EmailGateway)
    gateway.from_address = "agent@example.com"
    gateway.send = AsyncMock(return_value="em_0001")
    gateway.close = AsyncMock()
    return gateway


@pytest.fixture
def engine(engine_settings, store, mock_sms, mock_email, clock):
    """Provide an engine wired to the in-memory store and mocked gateways."""
    return build_engine(
        engine_settings,
        store=store,
        sms=mock_sms,
        email=mock_email,
        monotonic=clock,
    )


@pytest.fixture
def add_contact(store):
    """Insert a contact directly into the store."""

    async def _add(name, tenant_id=TENANT, **fields):
        record = {"tenant_id": tenant_id, "name": name, "type": "lead", "tags": []}
        record.update(fields)
        return await store.insert(CONTACTS, record)

    return _add
