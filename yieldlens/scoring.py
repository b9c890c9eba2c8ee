"""Yield scoring: reduces a position list to aggregate metrics. Pure, no I/O.

yield_score = apy * 35 + diversification * 25 + consistency * 20
              + capital_efficiency * 20
              - out_of_range_share * 15 - concentration * 10

Each component is normalized to [0, 1] before weighting and the total is
clamped to [0, 100]. Only the APY component depends on weighted APY, so the
score never decreases when weighted APY rises.
"""
from __future__ import annotations

import math
import time
from collections.abc import Iterable, Sequence

from .formatting import position_age_days
from .models import PortfolioMetrics, Position, PositionType
from .strategy import detect_strategy, loop_positions

# Normalization targets: reaching these maxes out the component.
APY_TARGET = 25.0
PROTOCOL_TARGET = 5
KIND_TARGET = 3
AGE_TARGET_DAYS = 90
EFFICIENCY_TARGET = 0.10  # 10% realized yield on deposits

APY_WEIGHT = 35
DIVERSIFICATION_WEIGHT = 25
CONSISTENCY_WEIGHT = 20
EFFICIENCY_WEIGHT = 20
OUT_OF_RANGE_PENALTY = 15
CONCENTRATION_PENALTY = 10

# Largest single position share above which concentration starts to cost.
CONCENTRATION_FLOOR = 0.5
DOMINANT_KIND_SHARE = 0.6

_KIND_TAGS = {
    PositionType.STAKING: "Staker",
    PositionType.LP: "LP Provider",
    PositionType.LENDING: "Lender",
    PositionType.BOND: "Bond Holder",
}

_DOMINANT_KIND_TAGS = {
    PositionType.LENDING: "Lending-Heavy",
    PositionType.STAKING: "Staking-Heavy",
    PositionType.LP: "LP-Heavy",
    PositionType.BOND: "Bond-Heavy",
}


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    if math.isnan(value):
        return lo
    return min(max(value, lo), hi)


def _fsum(values: Iterable[float]) -> float:
    """Exact float sum that saturates to inf instead of raising."""
    values = list(values)
    try:
        return math.fsum(values)
    except (OverflowError, ValueError):
        # intermediate overflow, or inf and -inf together
        return sum(values)


def _deposit_weights(positions: Sequence[Position]) -> list[float]:
    """Deposits scaled by the largest one, so sums stay in float range."""
    largest = max((p.deposited_usd for p in positions), default=0.0)
    if largest <= 0:
        return [0.0] * len(positions)
    if math.isinf(largest):
        return [1.0 if math.isinf(p.deposited_usd) else 0.0 for p in positions]
    return [p.deposited_usd / largest for p in positions]


def total_deposited(positions: Sequence[Position]) -> float:
    return _fsum(p.deposited_usd for p in positions)


def total_yield_earned(positions: Sequence[Position]) -> float:
    return _fsum(p.yield_earned for p in positions)


def weighted_apy(positions: Sequence[Position]) -> float:
    """Deposit-weighted APY; 0 when nothing is deposited."""
    funded = [p for p in positions if p.deposited_usd > 0]
    if not funded:
        return 0.0
    apys = {p.current_apy for p in funded}
    if len(apys) == 1:
        # a lone rate comes back unchanged rather than as x * w / w
        return apys.pop()
    weights = _deposit_weights(funded)
    return _fsum(p.current_apy * w for p, w in zip(funded, weights)) / _fsum(weights)


def out_of_range_share(positions: Sequence[Position]) -> float:
    """Fraction of deposits sitting in out-of-range liquidity positions."""
    weights = _deposit_weights(positions)
    total = _fsum(weights)
    if total <= 0:
        return 0.0
    stuck = _fsum(
        w
        for p, w in zip(positions, weights)
        if p.position_type is PositionType.LP and p.in_range is False
    )
    return stuck / total


def yield_score(positions: Sequence[Position], now: int | None = None) -> int:
    """Score a position set on a 0-100 scale (see module docstring)."""
    if not positions:
        return 0
    weights = _deposit_weights(positions)
    total_weight = _fsum(weights)
    if total_weight <= 0:
        return 0
    if now is None:
        now = int(time.time())
    largest = max(p.deposited_usd for p in positions)

    apy_score = _clamp(weighted_apy(positions) / APY_TARGET)

    protocols = len({p.protocol for p in positions})
    kinds = len({p.position_type for p in positions})
    diversification = 0.7 * _clamp(protocols / PROTOCOL_TARGET) + 0.3 * _clamp(
        kinds / KIND_TARGET
    )

    avg_age = _fsum(position_age_days(p.entry_timestamp, now) for p in positions) / len(
        positions
    )
    consistency = _clamp(avg_age / AGE_TARGET_DAYS)

    # yield / deposits, both scaled by the largest deposit
    scaled_yield = _fsum(p.yield_earned / largest for p in positions)
    efficiency = _clamp(scaled_yield / total_weight / EFFICIENCY_TARGET)

    largest_share = max(weights) / total_weight
    concentration = _clamp((largest_share - CONCENTRATION_FLOOR) / (1 - CONCENTRATION_FLOOR))

    score = (
        apy_score * APY_WEIGHT
        + diversification * DIVERSIFICATION_WEIGHT
        + consistency * CONSISTENCY_WEIGHT
        + efficiency * EFFICIENCY_WEIGHT
        - _clamp(out_of_range_share(positions)) * OUT_OF_RANGE_PENALTY
        - concentration * CONCENTRATION_PENALTY
    )
    return int(math.floor(_clamp(score, 0.0, 100.0) + 0.5))


def _dominant_kind(positions: Sequence[Position]) -> PositionType | None:
    weights = _deposit_weights(positions)
    total = _fsum(weights)
    if total <= 0:
        return None
    best: PositionType | None = None
    best_share = 0.0
    # enum order breaks ties
    for kind in PositionType:
        share = _fsum(w for p, w in zip(positions, weights) if p.position_type is kind) / total
        if share > best_share:
            best, best_share = kind, share
    return best if best_share >= DOMINANT_KIND_SHARE else None


def strategy_tags(positions: Sequence[Position], now: int | None = None) -> tuple[str, ...]:
    """Descriptive labels for the position mix, in a fixed rule order."""
    if not positions:
        return ()
    if now is None:
        now = int(time.time())

    tags: list[str] = []
    protocols = {p.protocol for p in positions}
    kinds = {p.position_type for p in positions}

    if len(protocols) >= 3:
        tags.append("Diversified")
    elif len(protocols) == 1:
        tags.append("Single Protocol")

    for kind, tag in _KIND_TAGS.items():
        if kind in kinds:
            tags.append(tag)

    if len(kinds) > 1:
        dominant = _dominant_kind(positions)
        if dominant is not None:
            tags.append(_DOMINANT_KIND_TAGS[dominant])

    if loop_positions(positions):
        tags.append("Yield Loop")

    avg_apy = _fsum(p.current_apy for p in positions) / len(positions)
    if avg_apy > 15:
        tags.append("High Yield")
    elif avg_apy < 5:
        tags.append("Conservative")

    if any(p.position_type is PositionType.LP and p.in_range is False for p in positions):
        tags.append("Out of Range")

    avg_age = _fsum(position_age_days(p.entry_timestamp, now) for p in positions) / len(
        positions
    )
    if avg_age > 180:
        tags.append("Long-term Holder")

    return tuple(dict.fromkeys(tags))


def score_tier(score: int) -> str:
    """Display label for a yield score."""
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Building"


def summarize(positions: Sequence[Position], now: int | None = None) -> PortfolioMetrics:
    """All aggregate metrics for a position list."""
    if now is None:
        now = int(time.time())
    score = yield_score(positions, now)
    return PortfolioMetrics(
        total_deposited=total_deposited(positions),
        total_yield_earned=total_yield_earned(positions),
        weighted_apy=weighted_apy(positions),
        yield_score=score,
        strategy_tags=strategy_tags(positions, now),
        tier=score_tier(score),
        position_count=len(positions),
        strategy=detect_strategy(positions),
    )
