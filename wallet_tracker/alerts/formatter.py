"""
Discord embed builder: one message per (transaction, tracked wallet).

Token transfers are enriched with metadata first, then classified; the
embed title and color follow the dominant classification. The whole message
is built in memory before anything is delivered.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from wallet_tracker.alerts.classifier import (
    ClassifiedTransfer,
    Direction,
    TransferKind,
    classify_transfers,
)
from wallet_tracker.alerts.metadata import TokenMetadataService
from wallet_tracker.alerts.pricing import PriceOracle
from wallet_tracker.solana_listener.models import CanonicalTransaction
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

EXPLORER_TX_URL = "https://solscan.io/tx/{signature}"
FOOTER_TEXT = "Solana Wallet Tracker"

# Discord caps an embed at 25 fields
MAX_EMBED_FIELDS = 25
_FIXED_FIELDS = 4  # wallet, time, fee, explorer link

COLOR_BUY = 0x2ECC71
COLOR_SELL = 0xE74C3C
COLOR_SWAP = 0x9B59B6
COLOR_TRANSFER = 0x4ECDC4
COLOR_GENERIC = 0x00FF00
COLOR_FAILED = 0x95A5A6

TYPE_EMOJI = (
    ("unstake", "📤"),
    ("swap", "🔄"),
    ("transfer", "💸"),
    ("stake", "🥩"),
    ("vote", "🗳️"),
    ("nft", "🖼️"),
)


def truncate_address(address: str) -> str:
    """Short display form: first 6 + ... + last 6 for anything longer than 12 characters."""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-6:]}"


def format_amount(value: float) -> str:
    """Up to 6 decimals with thousands separators, trailing zeros trimmed."""
    text = f"{value:,.6f}".rstrip("0").rstrip(".")
    return text or "0"


def format_compact_usd(value: float) -> str:
    for threshold, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if value >= threshold:
            return f"${value / threshold:.2f}{suffix}"
    return f"${value:,.2f}"


def type_emoji(tx_type: str) -> str:
    lowered = (tx_type or "").lower()
    for needle, emoji in TYPE_EMOJI:
        if needle in lowered:
            return emoji
    return "💳"


def title_and_color(tx: CanonicalTransaction, transfers: list[ClassifiedTransfer]) -> tuple[str, int]:
    kinds = {t.kind for t in transfers}
    if TransferKind.BUY in kinds and TransferKind.SELL in kinds:
        title, color = "🔄 Swap Detected", COLOR_SWAP
    elif TransferKind.BUY in kinds:
        title, color = "🟢 Buy Detected", COLOR_BUY
    elif TransferKind.SELL in kinds:
        title, color = "🔴 Sell Detected", COLOR_SELL
    elif TransferKind.TRANSFER in kinds:
        title, color = "💸 Transfer Detected", COLOR_TRANSFER
    else:
        title, color = f"💳 {type_emoji(tx.type)} Transaction Detected", COLOR_GENERIC
    if tx.failed:
        return f"❌ Failed: {title}", COLOR_FAILED
    return title, color


def _transfer_field(transfer: ClassifiedTransfer) -> dict[str, Any]:
    if transfer.kind is TransferKind.BUY:
        name = f"🟢 Bought {transfer.asset}"
    elif transfer.kind is TransferKind.SELL:
        name = f"🔴 Sold {transfer.asset}"
    elif transfer.direction is Direction.SENT:
        name = f"📤 Sent {transfer.asset}"
    else:
        name = f"📥 Received {transfer.asset}"

    lines = [f"**{format_amount(transfer.amount)} {transfer.asset}**"]
    if transfer.sol_amount is not None:
        verb = "Paid" if transfer.kind is TransferKind.BUY else "Got"
        lines.append(f"{verb}: {transfer.sol_amount:.6f} SOL")
    if transfer.usd_value is not None:
        lines.append(f"≈ ${transfer.usd_value:,.2f}")
    if transfer.market_cap_usd is not None:
        lines.append(f"Market Cap: {format_compact_usd(transfer.market_cap_usd)}")
    if transfer.mint:
        lines.append(f"Mint: `{truncate_address(transfer.mint)}`")
    if transfer.counterparty:
        label = "To" if transfer.direction is Direction.SENT else "From"
        lines.append(f"{label}: `{truncate_address(transfer.counterparty)}`")
    return {"name": name, "value": "\n".join(lines), "inline": False}


class NotificationFormatter:
    """
    Build Discord messages for tracked-wallet activity.

    describe_wallet maps an address to its registry label (or None); it is
    called once per message.
    """

    def __init__(
        self,
        metadata: TokenMetadataService,
        *,
        price_oracle: PriceOracle | None = None,
        describe_wallet: Callable[[str], str | None] | None = None,
    ) -> None:
        self._metadata = metadata
        self._price_oracle = price_oracle
        self._describe_wallet = describe_wallet

    def _label_for(self, wallet: str) -> str | None:
        if self._describe_wallet is None:
            return None
        try:
            return self._describe_wallet(wallet)
        except Exception as e:
            logger.warning("wallet_label_lookup_failed", wallet_id=wallet, error=str(e))
            return None

    async def classify(self, tx: CanonicalTransaction, wallet: str) -> list[ClassifiedTransfer]:
        """Enrich the wallet's token transfers and classify all its transfers."""
        mints = [t.mint for t in tx.token_transfers if t.touches(wallet)]
        metadata = await self._metadata.resolve_many(mints)
        return classify_transfers(tx, wallet, metadata, self._price_oracle)

    async def build_embed(self, tx: CanonicalTransaction, wallet: str) -> dict[str, Any]:
        transfers = await self.classify(tx, wallet)
        label = self._label_for(wallet)
        title, color = title_and_color(tx, transfers)
        short = truncate_address(wallet)

        fields: list[dict[str, Any]] = [
            {
                "name": "🏦 Wallet",
                "value": f"{label}\n`{short}`" if label else f"`{short}`",
                "inline": True,
            },
            {"name": "⏰ Time", "value": f"<t:{int(tx.timestamp)}:R>", "inline": True},
            {"name": "💰 Fee", "value": f"{tx.fee_sol:.6f} SOL", "inline": True},
        ]

        room = MAX_EMBED_FIELDS - _FIXED_FIELDS
        if len(transfers) > room:
            shown, hidden = transfers[: room - 1], transfers[room - 1 :]
        else:
            shown, hidden = transfers, []
        fields.extend(_transfer_field(t) for t in shown)
        if hidden:
            fields.append(
                {"name": "➕ More transfers", "value": f"{len(hidden)} more not shown", "inline": False}
            )

        fields.append(
            {
                "name": "🔗 Transaction",
                "value": f"[View on Solscan]({EXPLORER_TX_URL.format(signature=tx.signature)})",
                "inline": False,
            }
        )

        return {
            "title": title,
            "description": f"**{label or short}** · {tx.description or 'Solana transaction activity'}",
            "color": color,
            "fields": fields,
            "timestamp": datetime.fromtimestamp(tx.timestamp, tz=timezone.utc).isoformat(),
            "footer": {"text": FOOTER_TEXT},
        }

    async def build_message(self, tx: CanonicalTransaction, wallet: str) -> dict[str, Any]:
        """Complete Discord webhook body ({"embeds": [...]}) for one wallet."""
        return {"embeds": [await self.build_embed(tx, wallet)]}
