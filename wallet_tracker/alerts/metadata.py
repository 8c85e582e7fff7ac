"""
Token metadata enrichment: symbol, name, decimals and market data per mint.

TokenMetadataService.resolve() never raises. Lookups go through a
process-lifetime TokenMetadataCache so a mint seen in an earlier webhook is
not fetched again; a failed lookup yields the fallback record (UNKNOWN, 9
decimals) and is not cached, so a later delivery can retry it.

The default resolver calls Helius DAS getAsset over JSON-RPC.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from wallet_tracker.tracker_logging import get_logger

logger = get_logger(__name__)

DEFAULT_METADATA_TIMEOUT_SEC = 10.0
FALLBACK_SYMBOL = "UNKNOWN"
FALLBACK_NAME = "Unknown Token"
FALLBACK_DECIMALS = 9

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


@dataclass(frozen=True)
class TokenMetadata:
    """Display metadata for one mint; price and market cap in USD when known."""

    mint: str
    symbol: str
    name: str
    decimals: int
    price_usd: float | None = None
    market_cap_usd: float | None = None
    fallback: bool = False

    @classmethod
    def unknown(cls, mint: str) -> "TokenMetadata":
        return cls(
            mint=mint,
            symbol=FALLBACK_SYMBOL,
            name=FALLBACK_NAME,
            decimals=FALLBACK_DECIMALS,
            fallback=True,
        )


WRAPPED_SOL = TokenMetadata(mint=WRAPPED_SOL_MINT, symbol="SOL", name="Wrapped SOL", decimals=9)


class TokenMetadataResolver(Protocol):
    """External metadata source. May raise; the service turns failures into fallbacks."""

    async def fetch(self, mint: str) -> TokenMetadata | None: ...


class TokenMetadataCache:
    """
    Process-wide mint -> TokenMetadata mapping with no eviction.

    Concurrent deliveries may populate the same key; last write wins, which
    is safe because every value for a mint comes from the same source.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TokenMetadata] = {}

    def get(self, mint: str) -> TokenMetadata | None:
        return self._entries.get(mint)

    def set(self, metadata: TokenMetadata) -> None:
        self._entries[metadata.mint] = metadata

    def __contains__(self, mint: object) -> bool:
        return mint in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _to_float(value: Any) -> float | None:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if out > 0 else None


def parse_das_asset(mint: str, result: dict[str, Any]) -> TokenMetadata:
    """Map a DAS getAsset result onto TokenMetadata."""
    content = result.get("content") or {}
    content_meta = content.get("metadata") or {}
    token_info = result.get("token_info") or {}
    price_info = token_info.get("price_info") or {}

    decimals_raw = token_info.get("decimals")
    decimals = int(decimals_raw) if decimals_raw is not None else FALLBACK_DECIMALS
    symbol = (token_info.get("symbol") or content_meta.get("symbol") or "").strip() or FALLBACK_SYMBOL
    name = (content_meta.get("name") or "").strip() or symbol

    price = _to_float(price_info.get("price_per_token"))
    supply = _to_float(token_info.get("supply"))
    market_cap = None
    if price is not None and supply is not None:
        market_cap = price * supply / (10 ** decimals)

    return TokenMetadata(
        mint=mint,
        symbol=symbol,
        name=name,
        decimals=decimals,
        price_usd=price,
        market_cap_usd=market_cap,
    )


class HeliusAssetResolver:
    """Resolve mint metadata with Helius DAS getAsset (JSON-RPC over HTTP)."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = DEFAULT_METADATA_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.strip()
        self._timeout = timeout_sec
        self._transport = transport

    async def fetch(self, mint: str) -> TokenMetadata | None:
        body = {
            "jsonrpc": "2.0",
            "id": "wallet-tracker-asset",
            "method": "getAsset",
            "params": {"id": mint},
        }
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout), transport=self._transport
        ) as client:
            resp = await client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        if "error" in data:
            err = data["error"]
            raise RuntimeError(f"Helius DAS error: {err.get('message', err)} (code={err.get('code')})")
        result = data.get("result")
        if not isinstance(result, dict):
            return None
        return parse_das_asset(mint, result)


class TokenMetadataService:
    """Cache-fronted, fail-soft metadata lookups."""

    def __init__(
        self,
        resolver: TokenMetadataResolver,
        cache: TokenMetadataCache | None = None,
    ) -> None:
        self._resolver = resolver
        self.cache = cache if cache is not None else TokenMetadataCache()
        self.cache.set(WRAPPED_SOL)

    async def resolve(self, mint: str) -> TokenMetadata:
        """Return metadata for mint; fallback record on any lookup failure."""
        cached = self.cache.get(mint)
        if cached is not None:
            return cached
        if not mint:
            return TokenMetadata.unknown(mint)
        try:
            metadata = await self._resolver.fetch(mint)
        except Exception as e:
            logger.warning("token_metadata_lookup_failed", mint=mint, error=str(e))
            return TokenMetadata.unknown(mint)
        if metadata is None:
            logger.warning("token_metadata_not_found", mint=mint)
            return TokenMetadata.unknown(mint)
        self.cache.set(metadata)
        logger.debug("token_metadata_cached", mint=mint, symbol=metadata.symbol)
        return metadata

    async def resolve_many(self, mints: Iterable[str]) -> dict[str, TokenMetadata]:
        """Resolve distinct mints concurrently; each lookup soft-fails on its own."""
        unique = list(dict.fromkeys(mints))
        if not unique:
            return {}
        results = await asyncio.gather(*(self.resolve(m) for m in unique))
        return dict(zip(unique, results))
