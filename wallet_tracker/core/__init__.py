"""
Core utilities: exceptions and cross-cutting helpers shared by the
normalizer, alert pipeline, API server and CLI.
"""

from wallet_tracker.core.exceptions import (
    ConfigError,
    DeliveryError,
    HeliusAPIError,
    TrackerError,
    WalletAlreadyTrackedError,
    WalletNotFoundError,
    WalletValidationError,
)

__all__ = [
    "ConfigError",
    "DeliveryError",
    "HeliusAPIError",
    "TrackerError",
    "WalletAlreadyTrackedError",
    "WalletNotFoundError",
    "WalletValidationError",
]
