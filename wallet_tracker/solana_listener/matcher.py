"""
Involvement matcher: which tracked wallets a canonical transaction implicates.

A tracked address is involved when it pays the fee, sends or receives a
native or token transfer, or owns an account whose native balance changed.
Membership is exact string equality (base58 addresses are case-sensitive).
"""

from __future__ import annotations

from collections.abc import Iterable

from wallet_tracker.solana_listener.models import CanonicalTransaction


def _candidate_addresses(tx: CanonicalTransaction) -> Iterable[str]:
    """Addresses a transaction touches, in check order (duplicates allowed)."""
    yield tx.fee_payer
    for native in tx.native_transfers:
        yield native.from_user_account
        yield native.to_user_account
    for token in tx.token_transfers:
        yield token.from_user_account
        yield token.to_user_account
    for delta in tx.account_data:
        yield delta.account


def find_involved_wallets(
    tx: CanonicalTransaction,
    tracked_addresses: Iterable[str],
) -> list[str]:
    """
    Return tracked addresses implicated in tx, deduplicated, first-seen order.

    An empty list means "do not notify". Unsigned records are unparseable and
    always yield an empty list.
    """
    if not tx.signature:
        return []
    tracked = tracked_addresses if isinstance(tracked_addresses, (set, frozenset)) else set(tracked_addresses)
    if not tracked:
        return []
    involved: dict[str, None] = {}
    for address in _candidate_addresses(tx):
        if address and address in tracked:
            involved.setdefault(address, None)
    return list(involved)


def wallet_roles(tx: CanonicalTransaction, wallet: str) -> list[str]:
    """Roles wallet plays in tx (fee_payer, sender, receiver, balance_change); for logging."""
    roles: list[str] = []
    if tx.fee_payer == wallet:
        roles.append("fee_payer")
    transfers = [*tx.native_transfers, *tx.token_transfers]
    if any(t.from_user_account == wallet for t in transfers):
        roles.append("sender")
    if any(t.to_user_account == wallet for t in transfers):
        roles.append("receiver")
    if any(d.account == wallet for d in tx.account_data):
        roles.append("balance_change")
    return roles
