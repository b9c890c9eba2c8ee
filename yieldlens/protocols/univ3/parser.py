"""Pure valuation functions for concentrated-liquidity positions, no I/O."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...interfaces.market_data import MarketData
from ...pricing import (
    KnownLeg,
    derive_prices,
    is_in_range,
    is_wrapped_native,
    token_amounts_from_liquidity,
)

# NonfungiblePositionManager.positions(uint256)
POSITION_OUTPUT_TYPES = (
    "uint96",  # nonce
    "address",  # operator
    "address",  # token0
    "address",  # token1
    "uint24",  # fee
    "int24",  # tickLower
    "int24",  # tickUpper
    "uint128",  # liquidity
    "uint256",  # feeGrowthInside0LastX128
    "uint256",  # feeGrowthInside1LastX128
    "uint128",  # tokensOwed0
    "uint128",  # tokensOwed1
)

# UniswapV3Pool.slot0()
SLOT0_OUTPUT_TYPES = ("uint160", "int24", "uint16", "uint16", "uint16", "uint8", "bool")

UNKNOWN_SYMBOL = "???"
DEFAULT_DECIMALS = 18


@dataclass(frozen=True)
class RawPosition:
    token_id: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    tokens_owed0: int = 0
    tokens_owed1: int = 0


@dataclass(frozen=True)
class TokenMeta:
    symbol: str = UNKNOWN_SYMBOL
    decimals: int = DEFAULT_DECIMALS


@dataclass(frozen=True)
class Valuation:
    deposited_usd: float
    yield_earned: float
    in_range: bool
    price0_usd: float = 0.0
    price1_usd: float = 0.0


def parse_position_tuple(token_id: int, raw: tuple[Any, ...]) -> RawPosition:
    """Map the decoded ``positions()`` tuple onto a RawPosition."""
    if len(raw) != len(POSITION_OUTPUT_TYPES):
        raise ValueError(
            f"positions({token_id}) returned {len(raw)} fields, expected {len(POSITION_OUTPUT_TYPES)}"
        )
    return RawPosition(
        token_id=token_id,
        token0=raw[2],
        token1=raw[3],
        fee=int(raw[4]),
        tick_lower=int(raw[5]),
        tick_upper=int(raw[6]),
        liquidity=int(raw[7]),
        tokens_owed0=int(raw[10]),
        tokens_owed1=int(raw[11]),
    )


def fee_tier_label(fee: int) -> str:
    """Fee in hundredths of a bip as a percentage, e.g. 3000 → '0.30%'."""
    return f"{fee / 1_000_000 * 100:.2f}%"


def asset_label(symbol0: str, symbol1: str, fee: int) -> str:
    return f"{symbol0}/{symbol1} {fee_tier_label(fee)}"


def resolve_leg_prices(
    token0: str,
    token1: str,
    sqrt_price_x96: int,
    decimals0: int,
    decimals1: int,
    reference_price: float | None,
    market: MarketData,
) -> tuple[float, float]:
    """USD prices for both legs, seeded by whichever leg has a known price.

    The wrapped-native leg is seeded with the reference price; otherwise the
    first leg with a positive market-data price is used. No seed → (0, 0).
    """
    if reference_price is not None:
        if is_wrapped_native(token0):
            return derive_prices(
                sqrt_price_x96, decimals0, decimals1, KnownLeg.TOKEN0, reference_price
            )
        if is_wrapped_native(token1):
            return derive_prices(
                sqrt_price_x96, decimals0, decimals1, KnownLeg.TOKEN1, reference_price
            )

    info0 = market.token(token0)
    if info0 is not None and info0.price_usd > 0:
        return derive_prices(
            sqrt_price_x96, decimals0, decimals1, KnownLeg.TOKEN0, info0.price_usd
        )
    info1 = market.token(token1)
    if info1 is not None and info1.price_usd > 0:
        return derive_prices(
            sqrt_price_x96, decimals0, decimals1, KnownLeg.TOKEN1, info1.price_usd
        )
    return 0.0, 0.0


def value_position(
    position: RawPosition,
    sqrt_price_x96: int | None,
    decimals0: int,
    decimals1: int,
    price0_usd: float,
    price1_usd: float,
) -> Valuation:
    """Value a position at the pool's current price.

    Unknown pool state (``None``) or an uninitialized pool (zero price) values
    the position at 0 and reports it out of range.
    """
    fees_usd = (
        position.tokens_owed0 / 10**decimals0 * price0_usd
        + position.tokens_owed1 / 10**decimals1 * price1_usd
    )
    if not sqrt_price_x96:
        return Valuation(deposited_usd=0.0, yield_earned=fees_usd, in_range=False)

    amount0, amount1 = token_amounts_from_liquidity(
        position.liquidity, sqrt_price_x96, position.tick_lower, position.tick_upper
    )
    deposited_usd = (
        amount0 / 10**decimals0 * price0_usd + amount1 / 10**decimals1 * price1_usd
    )
    return Valuation(
        deposited_usd=max(deposited_usd, 0.0),
        yield_earned=fees_usd,
        in_range=is_in_range(sqrt_price_x96, position.tick_lower, position.tick_upper),
        price0_usd=price0_usd,
        price1_usd=price1_usd,
    )
