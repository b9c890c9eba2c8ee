"""USD price derivation for two-asset pools from one known leg."""
from __future__ import annotations

from enum import Enum

from .liquidity import sqrt_price_from_x96


class KnownLeg(str, Enum):
    TOKEN0 = "token0"
    TOKEN1 = "token1"


# Canonical wrapped-native (WETH) addresses, lowercase.
WRAPPED_NATIVE_ADDRESSES = frozenset(
    {
        "0x4200000000000000000000000000000000000006",  # OP Stack (MegaETH, Base, Optimism)
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",  # Ethereum mainnet
        "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",  # Arbitrum
    }
)


def is_wrapped_native(address: str) -> bool:
    return address.lower() in WRAPPED_NATIVE_ADDRESSES


def derive_prices(
    sqrt_price_x96: int,
    decimals0: int,
    decimals1: int,
    known_leg: KnownLeg,
    known_price_usd: float,
) -> tuple[float, float]:
    """Return ``(price0_usd, price1_usd)`` for a pool.

    ``sqrtPriceX96 = sqrt(token1_raw / token0_raw) * 2^96`` where raw means
    undivided by decimals. A zero price means the pool is uninitialized and
    both legs come back as 0.
    """
    sqrt_p = sqrt_price_from_x96(sqrt_price_x96)
    if sqrt_p == 0:
        return 0.0, 0.0

    price_raw = sqrt_p * sqrt_p
    # 1 token0 = price0_in_1 token1
    price0_in_1 = price_raw * 10 ** (decimals0 - decimals1)

    if known_leg is KnownLeg.TOKEN1:
        return price0_in_1 * known_price_usd, known_price_usd

    price1_in_0 = 1 / price0_in_1 if price0_in_1 > 0 else 0.0
    return known_price_usd, price1_in_0 * known_price_usd
