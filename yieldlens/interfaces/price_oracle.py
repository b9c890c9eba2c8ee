"""Price oracle protocols: reference asset USD price."""
from typing import Protocol


class PriceLookup(Protocol):
    """One external lookup of the reference asset's USD price."""

    async def fetch_price(self) -> float: ...


class ReferencePriceSource(Protocol):
    """Cached reference price; never raises."""

    async def get_price(self) -> float: ...
