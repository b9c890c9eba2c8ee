"""Reference asset (ETH) USD price: DefiLlama lookup plus a short-lived cache."""
from __future__ import annotations

import asyncio
import logging
import math
import ssl
import time
from typing import Callable

import aiohttp
import certifi

from ..config import ReferencePriceConfig
from ..interfaces.price_oracle import PriceLookup

logger = logging.getLogger(__name__)


class DefiLlamaPriceLookup:
    """Fetch one coin's current USD price from the DefiLlama coins API."""

    def __init__(self, config: ReferencePriceConfig) -> None:
        self.url = config.url
        self.coin_key = config.coin_key

    async def fetch_price(self) -> float:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(self.url) as response:
                if response.status != 200:
                    raise RuntimeError(
                        f"DefiLlama price lookup failed: HTTP {response.status}"
                    )
                data = await response.json()

        price = (data.get("coins") or {}).get(self.coin_key, {}).get("price")
        if price is None:
            raise RuntimeError(f"No price for {self.coin_key} in DefiLlama response")
        return float(price)


class ReferencePriceCache:
    """Time-bounded cache around a reference price lookup.

    Starts empty. ``get_price`` reuses the cached value while it is younger
    than ``ttl`` seconds, otherwise runs the lookup under ``timeout``. A
    failed lookup falls back to the last cached value, then ``default_price``.
    The cached ``(price, timestamp)`` pair is replaced as a whole; concurrent
    refreshes may both hit the lookup, and the last writer wins.
    """

    def __init__(
        self,
        lookup: PriceLookup,
        ttl: float = 60.0,
        timeout: float = 4.0,
        default_price: float = 2500.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lookup = lookup
        self.ttl = ttl
        self.timeout = timeout
        self.default_price = default_price
        self._clock = clock
        self._entry: tuple[float, float] | None = None

    @classmethod
    def from_config(cls, config: ReferencePriceConfig) -> ReferencePriceCache:
        return cls(
            DefiLlamaPriceLookup(config),
            ttl=config.ttl_seconds,
            timeout=config.timeout_seconds,
            default_price=config.default_price,
        )

    @property
    def cached_price(self) -> float | None:
        return self._entry[0] if self._entry else None

    def is_fresh(self) -> bool:
        entry = self._entry
        return entry is not None and self._clock() - entry[1] < self.ttl

    def invalidate(self) -> None:
        self._entry = None

    async def get_price(self) -> float:
        entry = self._entry
        if entry is not None and self._clock() - entry[1] < self.ttl:
            return entry[0]

        try:
            price = await asyncio.wait_for(self._lookup.fetch_price(), self.timeout)
        except Exception as e:
            fallback = entry[0] if entry is not None else self.default_price
            logger.warning(
                "Reference price lookup failed (%s); using $%.2f",
                str(e) or type(e).__name__,
                fallback,
            )
            return fallback

        if not math.isfinite(price) or price <= 0:
            fallback = entry[0] if entry is not None else self.default_price
            logger.warning("Ignoring invalid reference price %r; using $%.2f", price, fallback)
            return fallback

        self._entry = (price, self._clock())
        logger.debug("Reference price refreshed: $%.2f", price)
        return price


_default_cache: ReferencePriceCache | None = None


def get_default_cache(config: ReferencePriceConfig | None = None) -> ReferencePriceCache:
    """Process-wide cache, created on first use."""
    global _default_cache
    if _default_cache is None:
        _default_cache = ReferencePriceCache.from_config(config or ReferencePriceConfig())
    return _default_cache


def reset_default_cache() -> None:
    global _default_cache
    _default_cache = None
