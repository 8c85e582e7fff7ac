"""
Environment variable loading and validation for the wallet tracker.

- HELIUS_API_KEY: Helius API key (webhook management, token metadata)
- HELIUS_RPC_URL: Helius RPC endpoint (DAS getAsset for token metadata)
- DISCORD_WEBHOOK_URL: Discord channel webhook receiving notifications
- PORT / HOST: HTTP server bind (default 0.0.0.0:3000)
- WEBHOOK_PATH: inbound webhook route (default /webhook)
- WEBHOOK_URL: public URL registered with Helius (default http://localhost:{PORT}{WEBHOOK_PATH})
- WEBHOOK_AUTH_HEADER: optional shared secret expected in the Authorization header
- SOL_USD_PRICE: optional SOL price used for USD estimates
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from wallet_tracker.core.exceptions import ConfigError

# Project root: config is wallet_tracker/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_WEBHOOK_PATH = "/webhook"
DEFAULT_LOG_LEVEL = "INFO"


def load_tracker_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH, override=False)


@dataclass(frozen=True)
class Settings:
    """Typed runtime settings; built once by get_settings()."""

    helius_api_key: str
    helius_rpc_url: str
    discord_webhook_url: str
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    webhook_path: str = DEFAULT_WEBHOOK_PATH
    webhook_url: str = ""
    webhook_auth_header: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    sol_usd_price: float | None = None

    @property
    def public_webhook_url(self) -> str:
        """URL Helius should push to; falls back to the local server address."""
        if self.webhook_url:
            return self.webhook_url
        return f"http://localhost:{self.port}{self.webhook_path}"


def _require(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise ConfigError(f"Environment variable {name} is required but not set")
    return value


def _optional(name: str) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or None


def _parse_port(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError as e:
        raise ConfigError(f"PORT must be an integer, got {raw!r}") from e
    if not (0 < port < 65536):
        raise ConfigError(f"PORT out of range: {port}")
    return port


def _parse_price(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        price = float(raw)
    except ValueError as e:
        raise ConfigError(f"SOL_USD_PRICE must be a number, got {raw!r}") from e
    return price if price > 0 else None


def _normalize_path(raw: str | None) -> str:
    path = raw or DEFAULT_WEBHOOK_PATH
    return path if path.startswith("/") else "/" + path


def webhook_path_from_env() -> str:
    """Inbound webhook route from WEBHOOK_PATH (after loading .env), always with a leading slash."""
    load_tracker_env()
    return _normalize_path(_optional("WEBHOOK_PATH"))


def load_settings() -> Settings:
    """
    Build Settings from the environment (after loading .env).

    Raises ConfigError naming the first missing or malformed variable.
    """
    load_tracker_env()
    return Settings(
        helius_api_key=_require("HELIUS_API_KEY"),
        helius_rpc_url=_require("HELIUS_RPC_URL"),
        discord_webhook_url=_require("DISCORD_WEBHOOK_URL"),
        port=_parse_port(_optional("PORT")),
        host=_optional("HOST") or DEFAULT_HOST,
        webhook_path=webhook_path_from_env(),
        webhook_url=_optional("WEBHOOK_URL") or "",
        webhook_auth_header=_optional("WEBHOOK_AUTH_HEADER"),
        log_level=(_optional("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        sol_usd_price=_parse_price(_optional("SOL_USD_PRICE")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide Settings (cached after the first successful load)."""
    return load_settings()


def print_tracker_startup(settings: Settings, script_name: str) -> None:
    """Print bind address and webhook URL at script start; masks the API key."""
    rpc = settings.helius_rpc_url
    if "api-key=" in rpc:
        rpc = rpc.split("api-key=")[0] + "api-key=***"
    print(
        f"[wallet-tracker] {script_name} | port={settings.port} | "
        f"webhook={settings.public_webhook_url} | rpc={rpc}"
    )
