"""Collaborator interfaces for the yield aggregation core."""
from .chain import ChainClient
from .market_data import MarketData
from .price_oracle import PriceLookup, ReferencePriceSource
from .protocol_adapter import PositionReader

__all__ = [
    "ChainClient",
    "MarketData",
    "PositionReader",
    "PriceLookup",
    "ReferencePriceSource",
]
