"""
Transaction processor: webhook delivery -> notifications.

normalize -> match against active wallets -> format -> deliver, one message
per (transaction, wallet). A failure for one pair is logged and counted; it
never stops the other wallets of the same transaction or the other
transactions of the same delivery.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from wallet_tracker.alerts.formatter import NotificationFormatter
from wallet_tracker.core.exceptions import DeliveryError
from wallet_tracker.solana_listener.matcher import find_involved_wallets, wallet_roles
from wallet_tracker.solana_listener.models import CanonicalTransaction
from wallet_tracker.solana_listener.normalizer import normalize_webhook
from wallet_tracker.tracker_logging import get_logger, notification_context

logger = get_logger(__name__)


class Notifier(Protocol):
    async def deliver(self, message: dict[str, Any], wallet: str | None = None) -> bool: ...


@dataclass
class ProcessingSummary:
    """Counts for one webhook delivery."""

    received: int = 0
    parsed: int = 0
    matched: int = 0
    notified: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class TransactionProcessor:
    """
    Process Helius webhook bodies.

    load_active_wallets is the registry read (sync, may hit the database);
    it runs in the default executor once per delivery.
    """

    def __init__(
        self,
        notifier: Notifier,
        formatter: NotificationFormatter,
        load_active_wallets: Callable[[], Iterable[str]],
    ) -> None:
        self._notifier = notifier
        self._formatter = formatter
        self._load_active_wallets = load_active_wallets

    async def _tracked_addresses(self) -> set[str]:
        loop = asyncio.get_running_loop()
        wallets = await loop.run_in_executor(None, self._load_active_wallets)
        return set(wallets)

    async def process_webhook(self, body: Any) -> ProcessingSummary:
        """Normalize body and notify every involved tracked wallet."""
        summary = ProcessingSummary(received=len(body) if isinstance(body, list) else 1)
        transactions = normalize_webhook(body)
        summary.parsed = len(transactions)
        if not transactions:
            logger.info("webhook_processed", **summary.to_dict())
            return summary

        tracked = await self._tracked_addresses()
        for tx in transactions:
            involved = find_involved_wallets(tx, tracked)
            if not involved:
                logger.debug("transaction_not_tracked", signature=tx.signature)
                continue
            summary.matched += 1
            for wallet in involved:
                if await self.notify(tx, wallet):
                    summary.notified += 1
                else:
                    summary.failed += 1

        logger.info("webhook_processed", **summary.to_dict())
        return summary

    async def notify(self, tx: CanonicalTransaction, wallet: str) -> bool:
        """Format and deliver one notification. Returns False if it could not be sent."""
        with notification_context(wallet, tx.signature):
            logger.info("notification_sending", roles=wallet_roles(tx, wallet))
            try:
                message = await self._formatter.build_message(tx, wallet)
            except Exception as e:
                logger.exception("notification_format_failed", error=str(e))
                return False
            try:
                await self._notifier.deliver(message, wallet)
            except DeliveryError as e:
                logger.error("notification_delivery_failed", error=str(e), attempts=e.attempts)
                return False
            except Exception as e:
                # e.g. httpx.InvalidURL: not retryable, still isolated to this pair
                logger.exception("notification_delivery_crashed", error=str(e))
                return False
            logger.info("notification_sent")
            return True
