"""Price oracles."""
from .reference import (
    DefiLlamaPriceLookup,
    ReferencePriceCache,
    get_default_cache,
    reset_default_cache,
)

__all__ = [
    "DefiLlamaPriceLookup",
    "ReferencePriceCache",
    "get_default_cache",
    "reset_default_cache",
]
