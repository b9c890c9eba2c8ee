"""Liquidity math and pool price derivation."""
from .derivation import KnownLeg, derive_prices, is_wrapped_native
from .liquidity import (
    Q96,
    PriceRegime,
    is_in_range,
    price_regime,
    sqrt_price_at_tick,
    tick_to_adjusted_price,
    token_amounts_from_liquidity,
)

__all__ = [
    "Q96",
    "KnownLeg",
    "PriceRegime",
    "derive_prices",
    "is_in_range",
    "is_wrapped_native",
    "price_regime",
    "sqrt_price_at_tick",
    "tick_to_adjusted_price",
    "token_amounts_from_liquidity",
]
