"""Market data protocol: point-in-time token and pool snapshot."""
from typing import Protocol

from ..models import PoolInfo, TokenInfo


class MarketData(Protocol):
    """Abstract interface for looking up token prices and pool fee APYs."""

    def token(self, address: str) -> TokenInfo | None: ...

    def pool(self, address: str) -> PoolInfo | None: ...
