"""Point-in-time market data snapshot keyed by lowercase address."""
from __future__ import annotations

from collections.abc import Iterable

from .config import MarketConfig
from .models import PoolInfo, TokenInfo


class StaticMarketData:
    """In-memory snapshot of token prices and pool fee APYs.

    Refreshing is the caller's job: build a new snapshot or call ``update``.
    """

    def __init__(
        self,
        tokens: Iterable[TokenInfo] = (),
        pools: Iterable[PoolInfo] = (),
    ) -> None:
        self._tokens: dict[str, TokenInfo] = {}
        self._pools: dict[str, PoolInfo] = {}
        self.update(tokens, pools)

    @classmethod
    def from_config(cls, config: MarketConfig) -> StaticMarketData:
        return cls(config.tokens, config.pools)

    def update(
        self,
        tokens: Iterable[TokenInfo] = (),
        pools: Iterable[PoolInfo] = (),
    ) -> None:
        for token in tokens:
            self._tokens[token.address.lower()] = token
        for pool in pools:
            self._pools[pool.address.lower()] = pool

    def token(self, address: str) -> TokenInfo | None:
        return self._tokens.get(address.lower())

    def pool(self, address: str) -> PoolInfo | None:
        return self._pools.get(address.lower())

    def __len__(self) -> int:
        return len(self._tokens) + len(self._pools)
