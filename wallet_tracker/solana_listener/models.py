"""
Data models for normalized webhook transactions.

One CanonicalTransaction per webhook item regardless of the payload shape
Helius delivered (enhanced or raw). Records are frozen and built once per
webhook delivery; nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

LAMPORTS_PER_SOL = 1_000_000_000


@dataclass(frozen=True)
class NativeTransfer:
    """SOL movement between two accounts, in lamports."""

    from_user_account: str
    to_user_account: str
    amount: int

    @property
    def amount_sol(self) -> float:
        return self.amount / LAMPORTS_PER_SOL

    def touches(self, address: str) -> bool:
        return address in (self.from_user_account, self.to_user_account)

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "NativeTransfer":
        """Build from a Helius enhanced nativeTransfers entry."""
        return cls(
            from_user_account=item.get("fromUserAccount") or "",
            to_user_account=item.get("toUserAccount") or "",
            amount=abs(int(item.get("amount") or 0)),
        )


@dataclass(frozen=True)
class TokenTransfer:
    """
    SPL token movement.

    token_amount is raw (unscaled) units for raw-shape payloads and the
    provider's display amount for enhanced payloads.
    """

    from_user_account: str
    to_user_account: str
    from_token_account: str
    to_token_account: str
    token_amount: int | float
    mint: str
    token_standard: str = "fungible"

    def touches(self, address: str) -> bool:
        return address in (self.from_user_account, self.to_user_account)

    @property
    def is_raw_amount(self) -> bool:
        """True when token_amount is in base units and must be scaled by decimals."""
        return isinstance(self.token_amount, int)

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "TokenTransfer":
        """Build from a Helius enhanced tokenTransfers entry."""
        amount = item.get("tokenAmount") or 0
        return cls(
            from_user_account=item.get("fromUserAccount") or "",
            to_user_account=item.get("toUserAccount") or "",
            from_token_account=item.get("fromTokenAccount") or "",
            to_token_account=item.get("toTokenAccount") or "",
            token_amount=float(amount),
            mint=item.get("mint") or "",
            token_standard=item.get("tokenStandard") or "fungible",
        )


@dataclass(frozen=True)
class AccountDelta:
    """Native balance change of one account; zero changes are never recorded."""

    account: str
    native_balance_change: int

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "AccountDelta":
        """Build from a Helius enhanced accountData entry."""
        return cls(
            account=item.get("account") or "",
            native_balance_change=int(item.get("nativeBalanceChange") or 0),
        )


@dataclass(frozen=True)
class CanonicalTransaction:
    """
    Shape-independent transaction record used by the matcher and formatter.

    A record with an empty signature is not parseable and is never matched
    or notified on.
    """

    signature: str
    slot: int
    timestamp: int
    fee: int
    fee_payer: str
    type: str
    source: str
    description: str
    native_transfers: tuple[NativeTransfer, ...] = ()
    token_transfers: tuple[TokenTransfer, ...] = ()
    account_data: tuple[AccountDelta, ...] = ()
    transaction_error: Any = None
    instructions: tuple[Any, ...] = field(default=(), compare=False, repr=False)

    @property
    def failed(self) -> bool:
        """True when the on-chain transaction failed."""
        return self.transaction_error is not None

    @property
    def fee_sol(self) -> float:
        return self.fee / LAMPORTS_PER_SOL
