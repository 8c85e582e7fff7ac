"""
Pytest fixtures for wallet tracker tests. Uses a temporary SQLite DB for the
wallet registry and fake collaborators for Discord and Helius.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from wallet_tracker.config.env import Settings

VALID_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
VALID_WALLET_2 = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


class RecordingNotifier:
    """Notifier double: records every message, optionally failing for some wallets."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[tuple[dict[str, Any], str | None]] = []
        self.fail_for = fail_for or set()

    async def deliver(self, message: dict[str, Any], wallet: str | None = None) -> bool:
        from wallet_tracker.core.exceptions import DeliveryError

        if wallet in self.fail_for:
            raise DeliveryError(f"delivery failed for {wallet}", attempts=3)
        self.sent.append((message, wallet))
        return True

    async def test_connection(self) -> bool:
        return True


class StaticResolver:
    """Metadata resolver double that counts lookups per mint."""

    def __init__(self, entries: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.entries = entries or {}
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, mint: str):
        self.calls.append(mint)
        if self.error is not None:
            raise self.error
        return self.entries.get(mint)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        helius_api_key="test-key",
        helius_rpc_url="https://rpc.example.test/?api-key=test-key",
        discord_webhook_url="https://discord.example.test/api/webhooks/1/abc",
    )


@pytest.fixture
def wallet_tracking_db(tmp_path, monkeypatch):
    """
    Point the wallet registry at a temporary SQLite DB and init tables.
    Resets engine cache so each test gets a fresh DB. Unset DATABASE_URL so we use SQLite.
    """
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("WALLET_TRACKING_DB_PATH", str(tmp_path / "wallet_tracking.db"))

    import wallet_tracker.api_server.db_wallet_tracking as db

    db.reset_engine_for_test()
    db.init_db()
    yield db
    db.reset_engine_for_test()


@pytest.fixture
def fake_services(settings, wallet_tracking_db):
    """TrackerServices wired to a recording notifier and a mocked Helius manager."""
    from wallet_tracker.alerts.engine import TransactionProcessor
    from wallet_tracker.alerts.formatter import NotificationFormatter
    from wallet_tracker.alerts.metadata import TokenMetadataService
    from wallet_tracker.api_server.services import TrackerServices

    notifier = RecordingNotifier()
    formatter = NotificationFormatter(
        TokenMetadataService(StaticResolver()),
        describe_wallet=wallet_tracking_db.describe_wallet,
    )
    helius = MagicMock()
    helius.current_webhook_id = None
    helius.get_all_webhooks = AsyncMock(return_value=[])
    helius.setup_webhook_for_wallets = AsyncMock(return_value={"webhookID": "wh-1"})
    helius.cleanup_all_webhooks = AsyncMock(return_value=0)
    return TrackerServices(
        settings=settings,
        notifier=notifier,
        processor=TransactionProcessor(notifier, formatter, wallet_tracking_db.load_active_wallets),
        helius=helius,
    )


@pytest.fixture
def client(fake_services):
    """FastAPI TestClient with services overridden. Lifespan is not run (no context manager)."""
    from fastapi.testclient import TestClient

    from wallet_tracker.api_server.server import app
    from wallet_tracker.api_server.services import get_services

    app.dependency_overrides[get_services] = lambda: fake_services
    yield TestClient(app)
    app.dependency_overrides.clear()
