"""
Tests for the transaction processor: matching, per-wallet notification and
failure isolation.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from tests.conftest import RecordingNotifier, StaticResolver
from wallet_tracker.alerts.engine import TransactionProcessor
from wallet_tracker.alerts.formatter import NotificationFormatter
from wallet_tracker.alerts.metadata import TokenMetadataService

A = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
B = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
C = "Ch4tXj2qf8V6a1CzGQ3Q5fjnKsNCkXSkDXFYTxqUcvHM"


def _enhanced(signature: str, sender: str, receiver: str) -> dict:
    return {
        "signature": signature,
        "timestamp": 1700000000,
        "fee": 5000,
        "feePayer": sender,
        "type": "TRANSFER",
        "nativeTransfers": [{"fromUserAccount": sender, "toUserAccount": receiver, "amount": 1_000_000}],
    }


def _processor(notifier, tracked) -> TransactionProcessor:
    formatter = NotificationFormatter(TokenMetadataService(StaticResolver()))
    return TransactionProcessor(notifier, formatter, lambda: list(tracked))


def test_untracked_transaction_sends_nothing():
    notifier = RecordingNotifier()
    summary = asyncio.run(_processor(notifier, [C]).process_webhook([_enhanced("s1", A, B)]))
    assert notifier.sent == []
    assert summary.parsed == 1
    assert summary.matched == 0
    assert summary.notified == 0


def test_one_message_per_involved_wallet():
    notifier = RecordingNotifier()
    summary = asyncio.run(_processor(notifier, [A, B]).process_webhook([_enhanced("s1", A, B)]))
    assert [wallet for _, wallet in notifier.sent] == [A, B]
    assert summary.to_dict() == {"received": 1, "parsed": 1, "matched": 1, "notified": 2, "failed": 0}


def test_delivery_failure_does_not_block_other_wallets():
    notifier = RecordingNotifier(fail_for={A})
    body = [_enhanced("s1", A, B), _enhanced("s2", C, B)]
    summary = asyncio.run(_processor(notifier, [A, B]).process_webhook(body))
    assert [wallet for _, wallet in notifier.sent] == [B, B]
    assert summary.failed == 1
    assert summary.notified == 2


def test_format_failure_is_counted_not_raised():
    notifier = RecordingNotifier()
    processor = _processor(notifier, [A])
    processor._formatter.build_message = AsyncMock(side_effect=RuntimeError("boom"))
    summary = asyncio.run(processor.process_webhook(_enhanced("s1", A, B)))
    assert summary.failed == 1
    assert notifier.sent == []


def test_registry_not_read_for_empty_delivery():
    calls = []

    def load():
        calls.append(1)
        return [A]

    formatter = NotificationFormatter(TokenMetadataService(StaticResolver()))
    processor = TransactionProcessor(RecordingNotifier(), formatter, load)
    summary = asyncio.run(processor.process_webhook([{"bogus": True}]))
    assert summary.received == 1
    assert summary.parsed == 0
    assert calls == []


class ExplodingNotifier(RecordingNotifier):
    """Raises a non-delivery error (as httpx.InvalidURL would) for one wallet."""

    async def deliver(self, message, wallet=None):
        if wallet == A:
            raise ValueError("bad webhook url")
        return await super().deliver(message, wallet)


def test_unexpected_delivery_error_is_isolated():
    notifier = ExplodingNotifier()
    summary = asyncio.run(_processor(notifier, [A, B]).process_webhook([_enhanced("s1", A, B)]))
    assert [wallet for _, wallet in notifier.sent] == [B]
    assert summary.failed == 1
    assert summary.notified == 1


def test_notification_context_bound_during_delivery():
    import structlog

    seen = []

    class ContextNotifier(RecordingNotifier):
        async def deliver(self, message, wallet=None):
            seen.append(structlog.contextvars.get_contextvars())
            return await super().deliver(message, wallet)

    asyncio.run(_processor(ContextNotifier(), [B]).process_webhook([_enhanced("s9", A, B)]))
    assert seen == [{"wallet_id": B, "signature": "s9"}]
    assert "wallet_id" not in structlog.contextvars.get_contextvars()
