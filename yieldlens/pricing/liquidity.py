"""Concentrated-liquidity math. Pure functions, no I/O.

Ticks map to prices via ``price = 1.0001^tick``; pools publish their current
price as ``sqrt(price) * 2^96`` (sqrtPriceX96). Everything here works in
double precision, which is display-grade rather than settlement-grade.
"""
from __future__ import annotations

import math
from enum import Enum

Q96 = 2**96
TICK_BASE = 1.0001


class PriceRegime(str, Enum):
    BELOW = "below"  # all token0
    IN_RANGE = "in_range"
    ABOVE = "above"  # all token1


def sqrt_price_at_tick(tick: int) -> float:
    """sqrt(1.0001^tick) as a float (not Q96-scaled)."""
    return math.sqrt(TICK_BASE**tick)


def sqrt_price_from_x96(sqrt_price_x96: int) -> float:
    return sqrt_price_x96 / Q96


def tick_to_adjusted_price(tick: int, decimals0: int, decimals1: int) -> float:
    """Human-scale price of token0 in token1 at ``tick``.

    Multiply by token1's USD price to get token0's USD price at that tick.
    """
    return TICK_BASE**tick * 10 ** (decimals0 - decimals1)


def _check_bounds(tick_lower: int, tick_upper: int) -> None:
    if tick_lower >= tick_upper:
        raise ValueError(
            f"tick_lower must be below tick_upper (got {tick_lower} >= {tick_upper})"
        )


def price_regime(sqrt_price_x96: int, tick_lower: int, tick_upper: int) -> PriceRegime:
    """Where the pool's current price sits relative to the position bounds."""
    _check_bounds(tick_lower, tick_upper)
    sqrt_p = sqrt_price_from_x96(sqrt_price_x96)
    if sqrt_p <= sqrt_price_at_tick(tick_lower):
        return PriceRegime.BELOW
    if sqrt_p >= sqrt_price_at_tick(tick_upper):
        return PriceRegime.ABOVE
    return PriceRegime.IN_RANGE


def is_in_range(sqrt_price_x96: int, tick_lower: int, tick_upper: int) -> bool:
    return price_regime(sqrt_price_x96, tick_lower, tick_upper) is PriceRegime.IN_RANGE


def token_amounts_from_liquidity(
    liquidity: int,
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
) -> tuple[float, float]:
    """Token amounts held by a position, in each token's smallest unit.

    Divide by ``10**decimals`` for display. Formulas follow the Uniswap V3
    whitepaper (section 6.2):

        below range:  amount0 = L * (sqrtB - sqrtA) / (sqrtA * sqrtB), amount1 = 0
        above range:  amount0 = 0, amount1 = L * (sqrtB - sqrtA)
        in range:     amount0 = L * (sqrtB - sqrtP) / (sqrtP * sqrtB)
                      amount1 = L * (sqrtP - sqrtA)
    """
    regime = price_regime(sqrt_price_x96, tick_lower, tick_upper)
    sqrt_p = sqrt_price_from_x96(sqrt_price_x96)
    sqrt_a = sqrt_price_at_tick(tick_lower)
    sqrt_b = sqrt_price_at_tick(tick_upper)
    liq = float(liquidity)

    if regime is PriceRegime.BELOW:
        return liq * (sqrt_b - sqrt_a) / (sqrt_a * sqrt_b), 0.0
    if regime is PriceRegime.ABOVE:
        return 0.0, liq * (sqrt_b - sqrt_a)
    return liq * (sqrt_b - sqrt_p) / (sqrt_p * sqrt_b), liq * (sqrt_p - sqrt_a)
