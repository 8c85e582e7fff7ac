# Helius webhook management: keep the enhanced webhook subscribed to active wallets.

from wallet_tracker.ingestion.helius_webhooks import (
    TRACKED_TRANSACTION_TYPES,
    HeliusWebhookManager,
)

__all__ = [
    "TRACKED_TRANSACTION_TYPES",
    "HeliusWebhookManager",
]
