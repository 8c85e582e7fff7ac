"""
Helius webhook management client.

Keeps one enhanced Helius webhook pointed at our server and subscribed to
the active wallet set: create, update, list, delete. Every call goes through
httpx with a 30 s timeout; transport or API failures surface as
HeliusAPIError.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from wallet_tracker.core.exceptions import HeliusAPIError
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

HELIUS_WEBHOOKS_URL = "https://api.helius.xyz/v0/webhooks"
DEFAULT_HELIUS_TIMEOUT_SEC = 30.0

TRACKED_TRANSACTION_TYPES = (
    "TRANSFER",
    "TOKEN_MINT",
    "BURN",
    "BURN_NFT",
    "SWAP",
    "BUY",
    "SELL",
    "NFT_SALE",
    "NFT_BID",
    "NFT_LISTING",
    "NFT_CANCEL_LISTING",
    "NFT_MINT",
    "ADD_LIQUIDITY",
    "WITHDRAW_LIQUIDITY",
    "STAKE_SOL",
    "UNSTAKE_SOL",
    "STAKE_TOKEN",
    "UNSTAKE_TOKEN",
    "CLAIM_REWARDS",
    "DEPOSIT",
    "WITHDRAW",
    "UNKNOWN",
)


class HeliusWebhookManager:
    """Manage the Helius webhook that feeds this tracker."""

    def __init__(
        self,
        api_key: str,
        webhook_url: str,
        *,
        auth_header: str | None = None,
        base_url: str = HELIUS_WEBHOOKS_URL,
        timeout_sec: float = DEFAULT_HELIUS_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("api_key must be non-empty")
        self._api_key = api_key.strip()
        self.webhook_url = webhook_url
        self._auth_header = auth_header
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_sec
        self._transport = transport
        self.current_webhook_id: str | None = None

    def _payload(self, addresses: Sequence[str]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "webhookURL": self.webhook_url,
            "transactionTypes": list(TRACKED_TRANSACTION_TYPES),
            "accountAddresses": list(addresses),
            "webhookType": "enhanced",
        }
        if self._auth_header:
            body["authHeader"] = self._auth_header
        return body

    async def _request(self, method: str, path: str = "", json: Any = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout), transport=self._transport
            ) as client:
                resp = await client.request(method, url, params={"api-key": self._api_key}, json=json)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "helius_api_error",
                method=method,
                path=path or "/",
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise HeliusAPIError(
                f"Helius {method} {path or '/'} failed: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("helius_api_unreachable", method=method, path=path or "/", error=str(e))
            raise HeliusAPIError(f"Helius {method} {path or '/'} failed: {e}") from e
        if not resp.content:
            return None
        return resp.json()

    async def create_webhook(self, addresses: Sequence[str]) -> dict[str, Any]:
        logger.info("helius_webhook_creating", wallet_count=len(addresses))
        webhook = await self._request("POST", json=self._payload(addresses))
        self.current_webhook_id = webhook.get("webhookID")
        logger.info("helius_webhook_created", webhook_id=self.current_webhook_id)
        return webhook

    async def update_webhook(self, webhook_id: str, addresses: Sequence[str]) -> dict[str, Any]:
        logger.info("helius_webhook_updating", webhook_id=webhook_id, wallet_count=len(addresses))
        webhook = await self._request("PUT", f"/{webhook_id}", json=self._payload(addresses))
        self.current_webhook_id = webhook_id
        return webhook

    async def delete_webhook(self, webhook_id: str) -> None:
        await self._request("DELETE", f"/{webhook_id}")
        if self.current_webhook_id == webhook_id:
            self.current_webhook_id = None
        logger.info("helius_webhook_deleted", webhook_id=webhook_id)

    async def get_all_webhooks(self) -> list[dict[str, Any]]:
        return await self._request("GET") or []

    async def get_webhook(self, webhook_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/{webhook_id}")

    async def setup_webhook_for_wallets(self, addresses: Sequence[str]) -> dict[str, Any]:
        """Update the webhook already pointing at our URL, or create one."""
        if not addresses:
            raise ValueError("At least one wallet address is required")
        existing = next(
            (w for w in await self.get_all_webhooks() if w.get("webhookURL") == self.webhook_url),
            None,
        )
        if existing is not None:
            return await self.update_webhook(existing["webhookID"], addresses)
        return await self.create_webhook(addresses)

    async def cleanup_all_webhooks(self) -> int:
        """Delete every webhook on this API key; returns how many were deleted."""
        webhooks = await self.get_all_webhooks()
        logger.info("helius_webhook_cleanup", webhook_count=len(webhooks))
        for webhook in webhooks:
            await self.delete_webhook(webhook["webhookID"])
        return len(webhooks)
