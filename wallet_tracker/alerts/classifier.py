"""
Transfer classification for one (transaction, wallet) pair.

Token transfers touching the wallet are paired with an opposite-direction
SOL leg touching the same wallet:

- token in, SOL out  -> BUY
- token out, SOL in  -> SELL
- no SOL leg         -> TRANSFER

SOL transfers consumed as a BUY/SELL leg are not reported again. Any
remaining SOL transfer touching the wallet is a TRANSFER, unless its amount
equals a consumed leg within SOL_MATCH_EPSILON (same movement reported twice
by the provider).
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass

from wallet_tracker.alerts.metadata import TokenMetadata
from wallet_tracker.alerts.pricing import PriceOracle
from wallet_tracker.solana_listener.models import CanonicalTransaction, TokenTransfer

SOL_SYMBOL = "SOL"
SOL_MATCH_EPSILON = 1e-6


class TransferKind(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    TRANSFER = "TRANSFER"


class Direction(str, enum.Enum):
    SENT = "SENT"
    RECEIVED = "RECEIVED"


@dataclass(frozen=True)
class ClassifiedTransfer:
    """One notification line: what moved, which way, and against what."""

    kind: TransferKind
    direction: Direction
    asset: str
    amount: float
    counterparty: str
    mint: str | None = None
    sol_amount: float | None = None
    usd_value: float | None = None
    market_cap_usd: float | None = None

    @property
    def is_native(self) -> bool:
        return self.mint is None


def scale_token_amount(transfer: TokenTransfer, decimals: int) -> float:
    """Display amount: raw base units are divided by 10**decimals; display amounts pass through."""
    if transfer.is_raw_amount:
        return transfer.token_amount / (10 ** decimals)
    return float(transfer.token_amount)


def _usd(amount: float | None, price: float | None) -> float | None:
    if amount is None or price is None:
        return None
    return amount * price


def classify_transfers(
    tx: CanonicalTransaction,
    wallet: str,
    metadata: Mapping[str, TokenMetadata],
    price_oracle: PriceOracle | None = None,
) -> list[ClassifiedTransfer]:
    """Classify every transfer of tx that touches wallet, token legs first."""
    sol_price = price_oracle.sol_usd() if price_oracle is not None else None
    consumed: set[int] = set()
    consumed_amounts: list[float] = []
    out: list[ClassifiedTransfer] = []

    for token in tx.token_transfers:
        if not token.touches(wallet):
            continue
        received = token.to_user_account == wallet
        meta = metadata.get(token.mint) or TokenMetadata.unknown(token.mint)
        amount = scale_token_amount(token, meta.decimals)

        leg_index = None
        for idx, native in enumerate(tx.native_transfers):
            if idx in consumed:
                continue
            if received and native.from_user_account == wallet:
                leg_index = idx
                break
            if not received and native.to_user_account == wallet:
                leg_index = idx
                break

        sol_amount = None
        if leg_index is not None:
            consumed.add(leg_index)
            sol_amount = tx.native_transfers[leg_index].amount_sol
            consumed_amounts.append(sol_amount)
            kind = TransferKind.BUY if received else TransferKind.SELL
        else:
            kind = TransferKind.TRANSFER

        usd_value = _usd(sol_amount, sol_price)
        if usd_value is None:
            usd_value = _usd(amount, meta.price_usd)
        out.append(
            ClassifiedTransfer(
                kind=kind,
                direction=Direction.RECEIVED if received else Direction.SENT,
                asset=meta.symbol,
                amount=amount,
                counterparty=token.from_user_account if received else token.to_user_account,
                mint=token.mint,
                sol_amount=sol_amount,
                usd_value=usd_value,
                market_cap_usd=meta.market_cap_usd,
            )
        )

    for idx, native in enumerate(tx.native_transfers):
        if idx in consumed or not native.touches(wallet):
            continue
        sol_amount = native.amount_sol
        if any(abs(sol_amount - seen) < SOL_MATCH_EPSILON for seen in consumed_amounts):
            continue
        outgoing = native.from_user_account == wallet
        out.append(
            ClassifiedTransfer(
                kind=TransferKind.TRANSFER,
                direction=Direction.SENT if outgoing else Direction.RECEIVED,
                asset=SOL_SYMBOL,
                amount=sol_amount,
                counterparty=native.to_user_account if outgoing else native.from_user_account,
                usd_value=_usd(sol_amount, sol_price),
            )
        )
    return out
