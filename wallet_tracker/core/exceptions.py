"""
Application-level exceptions.

One base class so callers at the HTTP and CLI boundary can catch every
tracker failure; subclasses carry the condition the caller maps to a status
code or exit message.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for wallet tracker errors."""


class ConfigError(TrackerError):
    """Required configuration is missing or invalid. Fatal at startup."""


class WalletValidationError(TrackerError, ValueError):
    """Wallet address is empty or not a valid Solana public key."""


class WalletNotFoundError(TrackerError):
    """Wallet is not in the tracking list."""


class WalletAlreadyTrackedError(TrackerError):
    """Wallet is already tracked and active."""


class DeliveryError(TrackerError):
    """Chat webhook delivery failed after all retries."""

    def __init__(self, message: str, *, status_code: int | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class HeliusAPIError(TrackerError):
    """Helius webhook management API returned an error or was unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
