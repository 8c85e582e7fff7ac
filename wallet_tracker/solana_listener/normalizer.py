"""
Webhook payload normalizer: Helius deliveries to CanonicalTransaction records.

A delivery is either one object or a list of objects. Each object is probed
for its shape (enhanced transaction, raw getTransaction-style result, or
unrecognized) and handed to the normalization function registered for that
shape. Normalization functions return None instead of raising; the
dispatcher logs and skips failed items so one bad element never costs the
others.
"""

from __future__ import annotations

import enum
import time
from typing import Any, Callable

from wallet_tracker.solana_listener.models import (
    AccountDelta,
    CanonicalTransaction,
    NativeTransfer,
    TokenTransfer,
)
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

# Two balance deltas pair up as one transfer when they cancel out within this
# many lamports (absorbs the fee taken from the payer).
FEE_TOLERANCE_LAMPORTS = 1000

DEFAULT_ENHANCED_SOURCE = "helius"
RAW_SOURCE = "raw"
RAW_TYPE = "UNKNOWN"
RAW_DESCRIPTION = "Raw transaction data"
FALLBACK_DESCRIPTION = "Solana Transaction"

# Exceptions a malformed payload can raise while being walked
_PAYLOAD_ERRORS = (AttributeError, IndexError, KeyError, TypeError, ValueError)


class PayloadShape(enum.Enum):
    """Closed set of webhook item shapes."""

    ENHANCED = "enhanced"
    RAW = "raw"
    UNRECOGNIZED = "unrecognized"


def detect_shape(item: Any) -> PayloadShape:
    """Structural check: which normalization applies to this item (raw needs dict transaction and meta)."""
    if not isinstance(item, dict):
        return PayloadShape.UNRECOGNIZED
    if item.get("type") and item.get("signature"):
        return PayloadShape.ENHANCED
    if isinstance(item.get("transaction"), dict) and isinstance(item.get("meta"), dict):
        return PayloadShape.RAW
    return PayloadShape.UNRECOGNIZED


def generate_description(data: dict[str, Any]) -> str:
    """Human description for a payload that carries none."""
    if data.get("nativeTransfers"):
        return "SOL Transfer"
    if data.get("tokenTransfers"):
        return "Token Transfer"
    tx_type = data.get("type")
    if tx_type:
        return " ".join(word.capitalize() for word in str(tx_type).replace("_", " ").split())
    return FALLBACK_DESCRIPTION


def _now() -> int:
    return int(time.time())


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


# -----------------------------------------------------------------------------
# Enhanced shape (Helius enhanced transactions)
# -----------------------------------------------------------------------------


def normalize_enhanced(data: dict[str, Any]) -> CanonicalTransaction | None:
    """Map an enhanced transaction 1:1, filling defaults for absent fields."""
    try:
        return CanonicalTransaction(
            signature=str(data["signature"]),
            slot=int(data.get("slot") or 0),
            timestamp=int(data.get("timestamp") or _now()),
            fee=int(data.get("fee") or 0),
            fee_payer=data.get("feePayer") or "",
            type=str(data["type"]),
            source=data.get("source") or DEFAULT_ENHANCED_SOURCE,
            description=data.get("description") or generate_description(data),
            native_transfers=tuple(
                NativeTransfer.from_dict(t) for t in _as_list(data.get("nativeTransfers"))
            ),
            token_transfers=tuple(
                TokenTransfer.from_dict(t) for t in _as_list(data.get("tokenTransfers"))
            ),
            account_data=tuple(
                d
                for d in (AccountDelta.from_dict(a) for a in _as_list(data.get("accountData")))
                if d.native_balance_change != 0
            ),
            transaction_error=data.get("transactionError"),
            instructions=tuple(_as_list(data.get("instructions"))),
        )
    except _PAYLOAD_ERRORS as e:
        logger.error("webhook_enhanced_parse_failed", signature=data.get("signature"), error=str(e))
        return None


# -----------------------------------------------------------------------------
# Raw shape (getTransaction-style: transaction + meta)
# -----------------------------------------------------------------------------


def _get_account_keys(message: dict[str, Any]) -> list[str]:
    """Resolve accountKeys to base58 strings (handles json vs jsonParsed encodings)."""
    keys = _as_list(message.get("accountKeys"))
    out: list[str] = []
    for k in keys:
        if isinstance(k, str):
            out.append(k)
        elif isinstance(k, dict):
            out.append(k.get("pubkey") or "")
    return out


def _lamports(value: Any) -> int | None:
    """Integer balance, or None for a missing or non-numeric entry."""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _balance_deltas(meta: dict[str, Any]) -> list[int]:
    """Per-index native balance change; unreadable entries count as unchanged."""
    pre = _as_list(meta.get("preBalances"))
    post = _as_list(meta.get("postBalances"))
    deltas: list[int] = []
    for before, after in zip(pre, post):
        before, after = _lamports(before), _lamports(after)
        deltas.append(0 if before is None or after is None else after - before)
    return deltas


def extract_native_transfers(
    account_keys: list[str],
    deltas: list[int],
) -> list[NativeTransfer]:
    """
    Infer SOL transfers by pairing balance deltas that cancel within the fee tolerance.

    For each index i with a non-zero delta, the first j (index order) whose
    delta offsets it produces one transfer; the negative side is the sender.
    A pair already emitted from the other side is not emitted twice.
    """
    transfers: list[NativeTransfer] = []
    paired: set[frozenset[int]] = set()
    for i, diff in enumerate(deltas):
        if diff == 0:
            continue
        for j, other in enumerate(deltas):
            if i == j or abs(diff + other) >= FEE_TOLERANCE_LAMPORTS:
                continue
            pair = frozenset((i, j))
            if pair not in paired:
                paired.add(pair)
                sender, receiver = (i, j) if diff < 0 else (j, i)
                transfers.append(
                    NativeTransfer(
                        from_user_account=_key_at(account_keys, sender),
                        to_user_account=_key_at(account_keys, receiver),
                        amount=abs(diff),
                    )
                )
            break
    return transfers


def _key_at(account_keys: list[str], index: Any) -> str:
    if isinstance(index, int):
        return account_keys[index] if 0 <= index < len(account_keys) else ""
    return "" if index is None else str(index)


def _raw_token_amount(balance: dict[str, Any]) -> int | None:
    """Base-unit amount of a token balance entry; None when it is not an integer string."""
    ui = balance.get("uiTokenAmount") or {}
    if not isinstance(ui, dict):
        return None
    amount = ui.get("amount")
    if amount is None:
        return 0
    try:
        return int(amount)
    except (TypeError, ValueError):
        return None


def extract_token_transfers(
    account_keys: list[str],
    meta: dict[str, Any],
) -> list[TokenTransfer]:
    """Pair pre/post token balances by accountIndex and emit one transfer per changed balance."""
    post_by_index: dict[Any, dict[str, Any]] = {}
    for post in _as_list(meta.get("postTokenBalances")):
        if isinstance(post, dict):
            # first entry wins for duplicate indices
            post_by_index.setdefault(post.get("accountIndex"), post)

    transfers: list[TokenTransfer] = []
    for pre in _as_list(meta.get("preTokenBalances")):
        if not isinstance(pre, dict):
            continue
        post = post_by_index.get(pre.get("accountIndex"))
        if post is None:
            continue
        before, after = _raw_token_amount(pre), _raw_token_amount(post)
        if before is None or after is None:
            logger.warning("webhook_token_balance_unreadable", account_index=pre.get("accountIndex"))
            continue
        difference = after - before
        if difference == 0:
            continue
        transfers.append(
            TokenTransfer(
                from_user_account=pre.get("owner") or "",
                to_user_account=post.get("owner") or "",
                from_token_account=_key_at(account_keys, pre.get("accountIndex")),
                to_token_account=_key_at(account_keys, post.get("accountIndex")),
                token_amount=abs(difference),
                mint=pre.get("mint") or "",
                token_standard="fungible",
            )
        )
    return transfers


def extract_account_data(account_keys: list[str], meta: dict[str, Any]) -> list[AccountDelta]:
    """One delta per account key whose native balance changed."""
    pre = _as_list(meta.get("preBalances"))
    post = _as_list(meta.get("postBalances"))
    out: list[AccountDelta] = []
    for i, key in enumerate(account_keys):
        before = _lamports(pre[i]) if i < len(pre) else 0
        after = _lamports(post[i]) if i < len(post) else 0
        if before is None or after is None:
            continue
        change = after - before
        if change != 0:
            out.append(AccountDelta(account=key, native_balance_change=change))
    return out


def _extract(name: str, signature: str, fn: Callable[[], list[Any]]) -> tuple[Any, ...]:
    """Run one extractor; on a malformed payload log it and yield nothing for that part only."""
    try:
        return tuple(fn())
    except _PAYLOAD_ERRORS as e:
        logger.warning("webhook_raw_extract_failed", part=name, signature=signature, error=str(e))
        return ()


def normalize_raw(data: dict[str, Any]) -> CanonicalTransaction | None:
    """
    Derive a canonical record from a raw transaction + meta payload.

    Native transfers, token transfers and account deltas are extracted
    independently: a malformed part comes out empty without costing the
    others or the record itself.
    """
    try:
        tx_obj = data["transaction"]
        meta = data["meta"]
        if not isinstance(tx_obj, dict) or not isinstance(meta, dict):
            logger.warning("webhook_raw_shape_invalid", keys=sorted(data.keys()))
            return None
        message = tx_obj.get("message") if isinstance(tx_obj.get("message"), dict) else {}
        account_keys = _get_account_keys(message)
        signatures = _as_list(tx_obj.get("signatures"))
        signature = signatures[0] if signatures and isinstance(signatures[0], str) else ""
        return CanonicalTransaction(
            signature=signature,
            slot=int(data.get("slot") or 0),
            timestamp=int(data.get("blockTime") or _now()),
            fee=int(meta.get("fee") or 0),
            fee_payer=account_keys[0] if account_keys else "",
            type=RAW_TYPE,
            source=RAW_SOURCE,
            description=RAW_DESCRIPTION,
            native_transfers=_extract(
                "native_transfers",
                signature,
                lambda: extract_native_transfers(account_keys, _balance_deltas(meta)),
            ),
            token_transfers=_extract(
                "token_transfers", signature, lambda: extract_token_transfers(account_keys, meta)
            ),
            account_data=_extract(
                "account_data", signature, lambda: extract_account_data(account_keys, meta)
            ),
            transaction_error=meta.get("err"),
            instructions=tuple(_as_list(message.get("instructions"))),
        )
    except _PAYLOAD_ERRORS as e:
        logger.error("webhook_raw_parse_failed", error=str(e))
        return None


def _normalize_unrecognized(data: Any) -> CanonicalTransaction | None:
    keys = sorted(data.keys()) if isinstance(data, dict) else type(data).__name__
    logger.warning("webhook_item_unrecognized", keys=keys)
    return None


_NORMALIZERS: dict[PayloadShape, Callable[[Any], CanonicalTransaction | None]] = {
    PayloadShape.ENHANCED: normalize_enhanced,
    PayloadShape.RAW: normalize_raw,
    PayloadShape.UNRECOGNIZED: _normalize_unrecognized,
}


def normalize_item(item: Any) -> CanonicalTransaction | None:
    """
    Normalize one webhook item. Returns None for unparseable items,
    including records that come out without a signature.
    """
    shape = detect_shape(item)
    tx = _NORMALIZERS[shape](item)
    if tx is None:
        return None
    if not tx.signature:
        logger.warning("webhook_item_unsigned", shape=shape.value)
        return None
    return tx


def _is_single_delivery(body: dict[str, Any]) -> bool:
    return "transaction" in body or "meta" in body or detect_shape(body) is PayloadShape.ENHANCED


def normalize_webhook(body: Any) -> list[CanonicalTransaction]:
    """
    Normalize one webhook delivery (object or list of objects).

    Never raises on malformed input. Returned list may be shorter than the
    input; each element is parsed independently.
    """
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict) and _is_single_delivery(body):
        items = [body]
    else:
        keys = sorted(body.keys()) if isinstance(body, dict) else type(body).__name__
        logger.warning("webhook_payload_unrecognized", keys=keys)
        return []

    out: list[CanonicalTransaction] = []
    for index, item in enumerate(items):
        tx = normalize_item(item)
        if tx is None:
            logger.info("webhook_item_skipped", index=index)
            continue
        out.append(tx)
    logger.debug("webhook_normalized", received=len(items), parsed=len(out))
    return out
