"""
SOL price source for USD estimates in notifications.

The formatter only needs the current SOL/USD rate; anything implementing
PriceOracle can be plugged in. StaticPriceOracle serves the configured
SOL_USD_PRICE, or nothing when it is unset (USD lines are then omitted).
"""

from __future__ import annotations

from typing import Protocol


class PriceOracle(Protocol):
    def sol_usd(self) -> float | None: ...


class StaticPriceOracle:
    """Fixed SOL/USD rate from configuration."""

    def __init__(self, price: float | None = None) -> None:
        self._price = price if price and price > 0 else None

    def sol_usd(self) -> float | None:
        return self._price
