"""
Alert pipeline: enrich, classify and format tracked-wallet activity, then
deliver it to Discord.
"""

from wallet_tracker.alerts.classifier import (
    ClassifiedTransfer,
    Direction,
    TransferKind,
    classify_transfers,
)
from wallet_tracker.alerts.discord import DiscordNotifier
from wallet_tracker.alerts.engine import ProcessingSummary, TransactionProcessor
from wallet_tracker.alerts.formatter import NotificationFormatter, truncate_address
from wallet_tracker.alerts.metadata import (
    HeliusAssetResolver,
    TokenMetadata,
    TokenMetadataCache,
    TokenMetadataService,
)
from wallet_tracker.alerts.pricing import PriceOracle, StaticPriceOracle

__all__ = [
    "ClassifiedTransfer",
    "Direction",
    "DiscordNotifier",
    "HeliusAssetResolver",
    "NotificationFormatter",
    "PriceOracle",
    "ProcessingSummary",
    "StaticPriceOracle",
    "TokenMetadata",
    "TokenMetadataCache",
    "TokenMetadataService",
    "TransactionProcessor",
    "TransferKind",
    "classify_transfers",
    "truncate_address",
]
