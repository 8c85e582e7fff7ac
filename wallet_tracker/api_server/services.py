"""
Service wiring for the API server.

TrackerServices bundles the collaborators one running process shares: the
Discord notifier, the metadata-backed formatter, the transaction processor
and the Helius webhook manager. get_services() builds it once from settings;
tests override it through FastAPI dependency_overrides.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from wallet_tracker.alerts.discord import DiscordNotifier
from wallet_tracker.alerts.engine import TransactionProcessor
from wallet_tracker.alerts.formatter import NotificationFormatter
from wallet_tracker.alerts.metadata import HeliusAssetResolver, TokenMetadataService
from wallet_tracker.alerts.pricing import StaticPriceOracle
from wallet_tracker.api_server import db_wallet_tracking
from wallet_tracker.config import Settings, get_settings
from wallet_tracker.core.exceptions import HeliusAPIError
from wallet_tracker.ingestion.helius_webhooks import HeliusWebhookManager
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)


@dataclass
class TrackerServices:
    settings: Settings
    notifier: DiscordNotifier
    processor: TransactionProcessor
    helius: HeliusWebhookManager

    @classmethod
    def from_settings(cls, settings: Settings) -> "TrackerServices":
        notifier = DiscordNotifier(settings.discord_webhook_url)
        formatter = NotificationFormatter(
            TokenMetadataService(HeliusAssetResolver(settings.helius_rpc_url)),
            price_oracle=StaticPriceOracle(settings.sol_usd_price),
            describe_wallet=db_wallet_tracking.describe_wallet,
        )
        return cls(
            settings=settings,
            notifier=notifier,
            processor=TransactionProcessor(notifier, formatter, db_wallet_tracking.load_active_wallets),
            helius=HeliusWebhookManager(
                settings.helius_api_key,
                settings.public_webhook_url,
                auth_header=settings.webhook_auth_header,
            ),
        )

    async def refresh_webhook(self) -> bool:
        """Point the Helius webhook at the current active set. Best effort; False on failure."""
        addresses = db_wallet_tracking.load_active_wallets()
        if not addresses:
            logger.warning("helius_webhook_refresh_skipped", reason="no_active_wallets")
            return False
        try:
            await self.helius.setup_webhook_for_wallets(addresses)
        except HeliusAPIError as e:
            logger.error("helius_webhook_refresh_failed", error=str(e))
            return False
        logger.info("helius_webhook_refreshed", wallet_count=len(addresses))
        return True


@lru_cache(maxsize=1)
def get_services() -> TrackerServices:
    """Process-wide services (FastAPI dependency)."""
    return TrackerServices.from_settings(get_settings())
