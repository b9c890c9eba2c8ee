"""Concentrated-liquidity (Uniswap V3 fork) protocol template."""
from .adapter import UniV3Reader

__all__ = ["UniV3Reader"]
