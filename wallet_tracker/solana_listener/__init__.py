"""
Helius webhook intake.

Normalizes webhook payloads (enhanced or raw transactions) into canonical
records and matches them against the tracked wallet set.
"""

from wallet_tracker.solana_listener.matcher import find_involved_wallets, wallet_roles
from wallet_tracker.solana_listener.models import (
    AccountDelta,
    CanonicalTransaction,
    NativeTransfer,
    TokenTransfer,
)
from wallet_tracker.solana_listener.normalizer import (
    PayloadShape,
    detect_shape,
    normalize_item,
    normalize_webhook,
)

__all__ = [
    "AccountDelta",
    "CanonicalTransaction",
    "NativeTransfer",
    "PayloadShape",
    "TokenTransfer",
    "detect_shape",
    "find_involved_wallets",
    "normalize_item",
    "normalize_webhook",
    "wallet_roles",
]
