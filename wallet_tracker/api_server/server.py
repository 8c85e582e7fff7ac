"""
FastAPI server: Helius webhook intake plus wallet and webhook management.

POST {WEBHOOK_PATH} runs one delivery through the transaction processor
before responding. Wallet changes refresh the Helius webhook subscription
(best effort). Config via env (see wallet_tracker.config.env).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wallet_tracker import __version__
from wallet_tracker.api_server import db_wallet_tracking
from wallet_tracker.api_server.services import TrackerServices, get_services
from wallet_tracker.config.env import webhook_path_from_env
from wallet_tracker.core.exceptions import (
    HeliusAPIError,
    TrackerError,
    WalletAlreadyTrackedError,
    WalletNotFoundError,
    WalletValidationError,
)
from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

# Same source as Settings.webhook_path, so the route matches the URL registered with Helius
WEBHOOK_PATH = webhook_path_from_env()
_STARTED_AT = time.monotonic()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------


class AddWalletRequest(BaseModel):
    """POST /wallets body."""

    address: str = Field(..., min_length=1, max_length=64, description="Solana wallet address (base58)")
    label: str | None = Field(None, max_length=256, description="Optional display label")


# -----------------------------------------------------------------------------
# Lifespan: registry tables, Discord self-test, Helius subscription
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the registry and external hooks; failures of the hooks are logged, not fatal."""
    db_wallet_tracking.init_db()
    services: TrackerServices = app.dependency_overrides.get(get_services, get_services)()
    if services.settings.webhook_path != WEBHOOK_PATH:
        logger.warning(
            "webhook_path_mismatch",
            route=WEBHOOK_PATH,
            registered=services.settings.webhook_path,
        )

    if not await services.notifier.test_connection():
        logger.warning("discord_test_failed_continuing")
    if db_wallet_tracking.load_active_wallets():
        await services.refresh_webhook()
    else:
        logger.warning("no_active_wallets", hint="add wallets with the CLI or POST /wallets")

    logger.info(
        "server_ready",
        webhook_path=WEBHOOK_PATH,
        webhook_url=services.settings.public_webhook_url,
    )
    yield
    logger.info("server_stopped")


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Solana Wallet Tracker",
    description="Relays Helius transaction webhooks for tracked wallets to Discord.",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(TrackerError)
def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Map tracker errors to status codes with a consistent {"error": ...} body."""
    if isinstance(exc, WalletValidationError):
        status = 400
    elif isinstance(exc, WalletNotFoundError):
        status = 404
    elif isinstance(exc, WalletAlreadyTrackedError):
        status = 409
    elif isinstance(exc, HeliusAPIError):
        status = 502
    else:
        status = 500
    return JSONResponse(status_code=status, content={"error": str(exc)})


@app.get("/api")
def api_info() -> dict[str, Any]:
    return {
        "name": "Solana Wallet Tracker",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "status": "/status",
            "webhook": WEBHOOK_PATH,
            "wallets": "/wallets",
            "testDiscord": "/test-discord",
        },
        "timestamp": _now_iso(),
    }


@app.get("/health")
def health() -> dict[str, Any]:
    """Liveness probe."""
    return {
        "status": "healthy",
        "timestamp": _now_iso(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    }


@app.post(WEBHOOK_PATH)
async def receive_webhook(
    request: Request,
    services: TrackerServices = Depends(get_services),
) -> JSONResponse:
    """Helius webhook intake. Processes the whole delivery before responding."""
    expected = services.settings.webhook_auth_header
    if expected and request.headers.get("authorization") != expected:
        logger.warning("webhook_unauthorized", client=request.client.host if request.client else None)
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        body = await request.json()
    except ValueError:
        # JSONDecodeError and UnicodeDecodeError
        logger.warning("webhook_invalid_json")
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

    logger.info("webhook_received", items=len(body) if isinstance(body, list) else 1)
    try:
        summary = await services.processor.process_webhook(body)
    except Exception as e:
        logger.exception("webhook_processing_failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": "Failed to process webhook"})
    return JSONResponse(status_code=200, content={"success": True, **summary.to_dict()})


@app.get("/status")
async def status(services: TrackerServices = Depends(get_services)) -> dict[str, Any]:
    active = db_wallet_tracking.load_active_wallets()
    webhooks = await services.helius.get_all_webhooks()
    return {
        "status": "running",
        "activeWallets": len(active),
        "webhooks": len(webhooks),
        "currentWebhookId": services.helius.current_webhook_id,
        "timestamp": _now_iso(),
    }


@app.post("/test-discord")
async def test_discord(services: TrackerServices = Depends(get_services)) -> dict[str, Any]:
    success = await services.notifier.test_connection()
    return {"success": success, "message": "Discord test successful" if success else "Discord test failed"}


@app.get("/wallets")
def get_wallets() -> dict[str, Any]:
    return {"success": True, "wallets": db_wallet_tracking.list_wallets()}


@app.post("/wallets")
async def add_wallet(
    body: AddWalletRequest,
    services: TrackerServices = Depends(get_services),
) -> JSONResponse:
    address = body.address.strip()
    db_wallet_tracking.add_wallet(address, body.label or "API Added")
    refreshed = await services.refresh_webhook()
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": f"Wallet {address} added successfully",
            "webhookRefreshed": refreshed,
        },
    )


@app.delete("/wallets/{address}")
async def remove_wallet(
    address: str,
    services: TrackerServices = Depends(get_services),
) -> dict[str, Any]:
    db_wallet_tracking.remove_wallet(address)
    refreshed = await services.refresh_webhook()
    return {
        "success": True,
        "message": f"Wallet {address} removed successfully",
        "webhookRefreshed": refreshed,
    }


@app.post("/webhooks/setup")
async def setup_webhooks(services: TrackerServices = Depends(get_services)) -> JSONResponse:
    addresses = db_wallet_tracking.load_active_wallets()
    if not addresses:
        return JSONResponse(status_code=400, content={"error": "No active wallets to track"})
    webhook = await services.helius.setup_webhook_for_wallets(addresses)
    return JSONResponse(status_code=200, content={"success": True, "webhook": webhook})


@app.get("/webhooks")
async def list_webhooks(services: TrackerServices = Depends(get_services)) -> dict[str, Any]:
    return {"webhooks": await services.helius.get_all_webhooks()}


@app.delete("/webhooks/cleanup")
async def cleanup_webhooks(services: TrackerServices = Depends(get_services)) -> dict[str, Any]:
    deleted = await services.helius.cleanup_all_webhooks()
    return {"success": True, "deleted": deleted, "message": "All webhooks cleaned up"}
