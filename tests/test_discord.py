"""
Tests for Discord delivery: success, bounded retry and DeliveryError.
HTTP is mocked with httpx.MockTransport.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from wallet_tracker.alerts.discord import DiscordNotifier, build_test_message
from wallet_tracker.core.exceptions import DeliveryError

WEBHOOK = "https://discord.example.test/api/webhooks/1/abc"
MESSAGE = {"embeds": [{"title": "hello"}]}


def _notifier(handler, **kwargs) -> DiscordNotifier:
    return DiscordNotifier(WEBHOOK, retry_delay_sec=0, transport=httpx.MockTransport(handler), **kwargs)


def test_deliver_success_first_attempt():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    assert asyncio.run(_notifier(handler).deliver(MESSAGE)) is True
    assert len(calls) == 1
    assert str(calls[0].url) == WEBHOOK


def test_deliver_retries_then_succeeds():
    statuses = iter([500, 502, 204])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses))

    assert asyncio.run(_notifier(handler).deliver(MESSAGE, wallet="w")) is True


def test_deliver_raises_after_max_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, json={"message": "rate limited"})

    with pytest.raises(DeliveryError) as excinfo:
        asyncio.run(_notifier(handler).deliver(MESSAGE))
    assert len(calls) == 3
    assert excinfo.value.status_code == 429
    assert excinfo.value.attempts == 3


def test_deliver_transport_error_is_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(DeliveryError):
        asyncio.run(_notifier(handler, max_retries=2).deliver(MESSAGE))
    assert len(calls) == 2


def test_test_connection_never_raises():
    ok = _notifier(lambda request: httpx.Response(204))
    broken = _notifier(lambda request: httpx.Response(404))
    assert asyncio.run(ok.test_connection()) is True
    assert asyncio.run(broken.test_connection()) is False


def test_build_test_message_shape():
    [embed] = build_test_message()["embeds"]
    assert embed["title"] == "🧪 Test Notification"
    assert embed["fields"][0]["value"] == "Connected successfully"


def test_rejects_bad_configuration():
    with pytest.raises(ValueError):
        DiscordNotifier("  ")
    with pytest.raises(ValueError):
        DiscordNotifier(WEBHOOK, max_retries=0)


def test_client_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"message": "Unknown Webhook"})

    with pytest.raises(DeliveryError) as excinfo:
        asyncio.run(_notifier(handler).deliver(MESSAGE))
    assert len(calls) == 1
    assert excinfo.value.status_code == 404
    assert excinfo.value.attempts == 1
