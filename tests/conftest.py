"""Shared test fixtures and configuration."""

import os
import pytest
from datetime import date, timedelta
from typing import Dict, Any
from unittest.mock import AsyncMock

# Set up test environment variables before importing modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BILLING_RATES_URL", "http://rates.invalid/daily_json.js")

from billing_sdk.connectors import SimulatorBackend, SimulatorConfig, simulator_connectors
from billing_sdk.database import DatabaseManager
from billing_sdk.rates import ExchangeRateSnapshot, RateService, SnapshotSource
from billing_sdk.reconciliation import RecordReconciler
from billing_sdk.services import BillingService


@pytest.fixture
def live_rates() -> ExchangeRateSnapshot:
    """Round-number live rates for arithmetic checks."""
    return ExchangeRateSnapshot(usd=100.0, eur=110.0, updated="2024-06-01", source=SnapshotSource.LIVE)


@pytest.fixture
def cbr_document() -> Dict[str, Any]:
    """A rate document in the upstream daily JSON shape."""
    return {
        "Date": "2024-06-01T11:30:00+03:00",
        "Valute": {
            "USD": {"CharCode": "USD", "Nominal": 1, "Value": 90.0},
            "EUR": {"CharCode": "EUR", "Nominal": 1, "Value": 100.0},
        },
    }


@pytest.fixture
def rate_source(cbr_document):
    """Rate source returning ``cbr_document``."""
    source = AsyncMock()
    source.name = "mock"
    source.fetch_document.return_value = cbr_document
    return source


@pytest.fixture
def rate_service(rate_source) -> RateService:
    """Rate service over a mock source with no real backoff wait."""
    return RateService(source=rate_source, timeout=1.0, backoff=0, sleep=AsyncMock())


@pytest.fixture
def offline_rate_service() -> RateService:
    """Rate service whose source always fails, so rates stay on the fallback."""
    source = AsyncMock()
    source.name = "offline"
    source.fetch_document.side_effect = ConnectionError("offline")
    return RateService(source=source, timeout=1.0, backoff=0, sleep=AsyncMock())


@pytest.fixture
def backend() -> SimulatorBackend:
    """Fresh simulator backend with immediate event delivery."""
    return SimulatorBackend()


@pytest.fixture
def deferred_backend() -> SimulatorBackend:
    """Simulator backend that queues realtime events until delivered."""
    return SimulatorBackend(SimulatorConfig(defer_events=True))


@pytest.fixture
def connectors(backend):
    return simulator_connectors(backend)


@pytest.fixture
def provider_store(connectors) -> RecordReconciler:
    return RecordReconciler(connectors[0])


@pytest.fixture
def payment_store(connectors) -> RecordReconciler:
    return RecordReconciler(connectors[1])


@pytest.fixture
async def billing_service(backend, rate_service):
    """Started billing service over the simulator backend."""
    service = BillingService.from_connectors(*simulator_connectors(backend), rate_service=rate_service)
    await service.start()
    yield service
    await service.stop()


@pytest.fixture
async def db_manager():
    """In-memory SQLite database manager."""
    manager = DatabaseManager(database_url="sqlite+aiosqlite:///:memory:")
    await manager.initialize()
    yield manager
    await manager.shutdown()


@pytest.fixture
def today() -> date:
    return date(2024, 6, 10)


@pytest.fixture
def provider_fields() -> Dict[str, Any]:
    return {
        "name": "Hetzner",
        "url": "https://accounts.hetzner.com/invoice",
        "currency_default": "EUR",
        "notes": None,
    }


@pytest.fixture
def payment_fields(today) -> Dict[str, Any]:
    """Payment fields; ``provider_id`` must be filled in by the test."""
    return {
        "server_id": "srv-1",
        "period": "monthly",
        "next_payment": (today + timedelta(days=3)).isoformat(),
        "amount": 1000,
        "currency": "RUB",
        "country": "DE",
    }
