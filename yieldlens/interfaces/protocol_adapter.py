"""Position reader: per-protocol position fetching."""
from typing import Protocol

from ..models import Position


class PositionReader(Protocol):
    """Abstract interface for reading a wallet's positions at one protocol."""

    @property
    def protocol_name(self) -> str: ...

    async def fetch_positions(self, wallet_address: str) -> list[Position]: ...

    async def test_connection(self) -> bool: ...
