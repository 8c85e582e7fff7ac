"""
Discord webhook delivery with bounded retry.

deliver() posts one prepared message. Transport errors, 429 and 5xx are
retried with linearly increasing delay (retry_delay_sec * attempt); any other
4xx fails at once. When it gives up it raises DeliveryError for that
message only.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import httpx

from wallet_tracker.core.exceptions import DeliveryError
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SEC = 1.0
DEFAULT_DELIVERY_TIMEOUT_SEC = 10.0


def _is_retryable(status_code: int | None) -> bool:
    """Transport errors, 429 and 5xx are worth another attempt; other 4xx will not change."""
    return status_code is None or status_code == 429 or status_code >= 500


def build_test_message() -> dict[str, Any]:
    """Connectivity self-test embed."""
    now = datetime.now(timezone.utc)
    return {
        "embeds": [
            {
                "title": "🧪 Test Notification",
                "description": "Solana Wallet Tracker is now active and monitoring your wallets!",
                "color": 0x00FF00,
                "fields": [
                    {"name": "✅ Status", "value": "Connected successfully", "inline": True},
                    {"name": "⏰ Time", "value": f"<t:{int(now.timestamp())}:F>", "inline": True},
                ],
                "timestamp": now.isoformat(),
                "footer": {"text": "Solana Wallet Tracker - Test"},
            }
        ]
    }


class DiscordNotifier:
    """Posts prepared messages to one Discord channel webhook."""

    def __init__(
        self,
        webhook_url: str,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_sec: float = DEFAULT_RETRY_DELAY_SEC,
        timeout_sec: float = DEFAULT_DELIVERY_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            webhook_url: Discord webhook URL (https://discord.com/api/webhooks/...).
            max_retries: Total attempts per message, including the first.
            retry_delay_sec: Base delay; attempt n waits retry_delay_sec * n before attempt n+1.
            timeout_sec: HTTP timeout per attempt.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        if not webhook_url.strip():
            raise ValueError("webhook_url must be non-empty")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._webhook_url = webhook_url.strip()
        self._max_retries = max_retries
        self._retry_delay = retry_delay_sec
        self._timeout = timeout_sec
        self._transport = transport

    async def deliver(self, message: dict[str, Any], wallet: str | None = None) -> bool:
        """
        Post message, retrying transient failures. Returns True on success.

        Raises DeliveryError after the last attempt fails.
        """
        last_error: Exception | None = None
        status_code: int | None = None
        attempts = 0
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout), transport=self._transport
        ) as client:
            for attempt in range(1, self._max_retries + 1):
                attempts = attempt
                try:
                    resp = await client.post(self._webhook_url, json=message)
                    resp.raise_for_status()
                    logger.debug("discord_delivered", wallet_id=wallet, attempt=attempt)
                    return True
                except httpx.HTTPStatusError as e:
                    last_error = e
                    status_code = e.response.status_code
                except httpx.HTTPError as e:
                    last_error = e
                    status_code = None
                if not _is_retryable(status_code):
                    break
                if attempt < self._max_retries:
                    logger.warning(
                        "discord_delivery_retry",
                        wallet_id=wallet,
                        attempt=attempt,
                        max_retries=self._max_retries,
                        status_code=status_code,
                        error=str(last_error),
                    )
                    await asyncio.sleep(self._retry_delay * attempt)

        if status_code == 429:
            logger.error("discord_rate_limited", wallet_id=wallet, attempts=attempts)
        else:
            logger.error(
                "discord_delivery_failed",
                wallet_id=wallet,
                attempts=attempts,
                status_code=status_code,
                error=str(last_error),
            )
        raise DeliveryError(
            f"Discord webhook delivery failed after {attempts} attempt(s): {last_error}",
            status_code=status_code,
            attempts=attempts,
        ) from last_error

    async def test_connection(self) -> bool:
        """Send a test notification; True on success, False otherwise (never raises)."""
        try:
            await self.deliver(build_test_message())
        except DeliveryError as e:
            logger.error("discord_test_failed", error=str(e))
            return False
        logger.info("discord_test_sent")
        return True
