"""
Tests for webhook payload normalization (enhanced, raw and malformed deliveries).
"""

from __future__ import annotations

from wallet_tracker.solana_listener.normalizer import (
    FALLBACK_DESCRIPTION,
    RAW_DESCRIPTION,
    PayloadShape,
    detect_shape,
    extract_native_transfers,
    generate_description,
    normalize_webhook,
)

SENDER = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
RECEIVER = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _enhanced(**overrides) -> dict:
    item = {
        "signature": "sig-enhanced",
        "slot": 250,
        "timestamp": 1700000000,
        "fee": 5000,
        "feePayer": SENDER,
        "type": "TRANSFER",
        "source": "SYSTEM_PROGRAM",
        "description": "sent 1 SOL",
        "nativeTransfers": [
            {"fromUserAccount": SENDER, "toUserAccount": RECEIVER, "amount": 1_000_000_000}
        ],
        "tokenTransfers": [],
        "accountData": [
            {"account": SENDER, "nativeBalanceChange": -1_000_005_000},
            {"account": RECEIVER, "nativeBalanceChange": 1_000_000_000},
            {"account": "Vote111111111111111111111111111111111111111", "nativeBalanceChange": 0},
        ],
    }
    item.update(overrides)
    return item


def _raw() -> dict:
    return {
        "slot": 300,
        "blockTime": 1700000100,
        "transaction": {
            "signatures": ["sig-raw"],
            "message": {"accountKeys": [SENDER, RECEIVER], "instructions": []},
        },
        "meta": {
            "fee": 5000,
            "err": None,
            "preBalances": [10000, 0],
            "postBalances": [5000, 5000],
            "preTokenBalances": [],
            "postTokenBalances": [],
        },
    }


def test_detect_shape():
    assert detect_shape(_enhanced()) is PayloadShape.ENHANCED
    assert detect_shape(_raw()) is PayloadShape.RAW
    assert detect_shape({"foo": "bar"}) is PayloadShape.UNRECOGNIZED
    assert detect_shape("not a dict") is PayloadShape.UNRECOGNIZED


def test_enhanced_maps_fields_and_drops_zero_deltas():
    [tx] = normalize_webhook([_enhanced()])
    assert tx.signature == "sig-enhanced"
    assert tx.slot == 250
    assert tx.fee_payer == SENDER
    assert tx.source == "SYSTEM_PROGRAM"
    assert len(tx.native_transfers) == 1
    assert tx.native_transfers[0].amount == 1_000_000_000
    assert [d.account for d in tx.account_data] == [SENDER, RECEIVER]
    assert tx.failed is False


def test_enhanced_defaults_when_fields_absent():
    item = _enhanced(source=None, description="", slot=None, fee=None)
    [tx] = normalize_webhook(item)
    assert tx.source == "helius"
    assert tx.description == "SOL Transfer"
    assert tx.slot == 0
    assert tx.fee == 0


def test_generate_description():
    assert generate_description({"nativeTransfers": [{}]}) == "SOL Transfer"
    assert generate_description({"tokenTransfers": [{}]}) == "Token Transfer"
    assert generate_description({"type": "NFT_SALE"}) == "Nft Sale"
    assert generate_description({}) == FALLBACK_DESCRIPTION


def test_raw_single_transfer_emitted_once():
    """A sends 5000 lamports to B: exactly one native transfer A -> B."""
    [tx] = normalize_webhook(_raw())
    assert tx.signature == "sig-raw"
    assert tx.timestamp == 1700000100
    assert tx.type == "UNKNOWN"
    assert tx.source == "raw"
    assert tx.description == RAW_DESCRIPTION
    assert tx.fee_payer == SENDER
    assert len(tx.native_transfers) == 1
    transfer = tx.native_transfers[0]
    assert transfer.from_user_account == SENDER
    assert transfer.to_user_account == RECEIVER
    assert transfer.amount == 5000


def test_raw_fee_tolerance_is_strict():
    keys = [SENDER, RECEIVER]
    # within tolerance: paid 5000 + 999 fee
    assert len(extract_native_transfers(keys, [-5999, 5000])) == 1
    # exactly at tolerance: not a pair
    assert extract_native_transfers(keys, [-6000, 5000]) == []


def test_raw_token_transfers_from_balances():
    raw = _raw()
    raw["transaction"]["message"]["accountKeys"] = [SENDER, RECEIVER, "TokenAcctA", "TokenAcctB"]
    raw["meta"]["preBalances"] = [10000, 0, 0, 0]
    raw["meta"]["postBalances"] = [5000, 5000, 0, 0]
    raw["meta"]["preTokenBalances"] = [
        {"accountIndex": 2, "mint": MINT, "owner": SENDER, "uiTokenAmount": {"amount": "1000"}},
        {"accountIndex": 3, "mint": MINT, "owner": RECEIVER, "uiTokenAmount": {"amount": "0"}},
    ]
    raw["meta"]["postTokenBalances"] = [
        {"accountIndex": 2, "mint": MINT, "owner": SENDER, "uiTokenAmount": {"amount": "400"}},
        {"accountIndex": 3, "mint": MINT, "owner": RECEIVER, "uiTokenAmount": {"amount": "600"}},
    ]
    [tx] = normalize_webhook(raw)
    assert len(tx.token_transfers) == 2
    first = tx.token_transfers[0]
    assert first.mint == MINT
    assert first.token_amount == 600
    assert first.is_raw_amount is True
    assert first.from_token_account == "TokenAcctA"


def test_array_with_malformed_element_keeps_the_rest():
    body = [_enhanced(), {"unexpected": True}, "garbage", _raw()]
    txs = normalize_webhook(body)
    assert [t.signature for t in txs] == ["sig-enhanced", "sig-raw"]


def test_unsigned_raw_item_dropped():
    raw = _raw()
    raw["transaction"]["signatures"] = []
    assert normalize_webhook([raw]) == []


def test_enhanced_bad_field_dropped():
    assert normalize_webhook([_enhanced(slot="not-a-number")]) == []


def test_unrecognized_body_returns_empty():
    assert normalize_webhook({"hello": "world"}) == []
    assert normalize_webhook(None) == []
    assert normalize_webhook([]) == []


def test_failed_transaction_flag():
    [tx] = normalize_webhook([_enhanced(transactionError={"InstructionError": [0, "Custom"]})])
    assert tx.failed is True


def test_raw_balance_inference_with_fee_payer_balances():
    raw = _raw()
    raw["meta"]["preBalances"] = [1_000_000_000, 500_000_000]
    raw["meta"]["postBalances"] = [999_995_000, 500_005_000]
    [tx] = normalize_webhook(raw)
    [transfer] = tx.native_transfers
    assert (transfer.from_user_account, transfer.to_user_account, transfer.amount) == (SENDER, RECEIVER, 5000)
    assert [(d.account, d.native_balance_change) for d in tx.account_data] == [(SENDER, -5000), (RECEIVER, 5000)]


def test_unreadable_token_balance_keeps_native_transfer():
    raw = _raw()
    raw["transaction"]["message"]["accountKeys"] = [SENDER, RECEIVER, "TokenAcctA"]
    raw["meta"]["preBalances"] = [10000, 0, 0]
    raw["meta"]["postBalances"] = [5000, 5000, 0]
    raw["meta"]["preTokenBalances"] = [
        {"accountIndex": 2, "mint": MINT, "owner": SENDER, "uiTokenAmount": {"amount": "1.5"}},
    ]
    raw["meta"]["postTokenBalances"] = [
        {"accountIndex": 2, "mint": MINT, "owner": SENDER, "uiTokenAmount": {"amount": "1"}},
    ]
    [tx] = normalize_webhook(raw)
    assert tx.token_transfers == ()
    [transfer] = tx.native_transfers
    assert (transfer.from_user_account, transfer.to_user_account, transfer.amount) == (SENDER, RECEIVER, 5000)


def test_none_balance_entries_are_skipped_per_index():
    raw = _raw()
    raw["transaction"]["message"]["accountKeys"] = [SENDER, RECEIVER, "Third"]
    raw["meta"]["preBalances"] = [10000, 0, None]
    raw["meta"]["postBalances"] = [5000, 5000, None]
    [tx] = normalize_webhook(raw)
    assert len(tx.native_transfers) == 1
    assert [d.account for d in tx.account_data] == [SENDER, RECEIVER]


def test_malformed_token_balance_list_only_empties_tokens():
    raw = _raw()
    # unhashable accountIndex breaks balance pairing
    raw["meta"]["preTokenBalances"] = [{"accountIndex": [0], "uiTokenAmount": {"amount": "5"}}]
    raw["meta"]["postTokenBalances"] = [{"accountIndex": [0], "uiTokenAmount": {"amount": "9"}}]
    [tx] = normalize_webhook(raw)
    assert tx.token_transfers == ()
    assert len(tx.native_transfers) == 1
    assert len(tx.account_data) == 2


def test_raw_shape_with_empty_meta_is_recognized():
    item = {"transaction": {"signatures": ["sig-empty-meta"], "message": {"accountKeys": [SENDER]}}, "meta": {}}
    assert detect_shape(item) is PayloadShape.RAW
    [tx] = normalize_webhook(item)
    assert tx.signature == "sig-empty-meta"
    assert tx.native_transfers == ()
    assert detect_shape({"transaction": "abc", "meta": {}}) is PayloadShape.UNRECOGNIZED
