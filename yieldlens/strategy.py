"""Strategy detection: how a position set chains its yield sources. No I/O.

A deposit position (lending, staking, bond) whose asset shows up as a leg of an
LP position's pair is a yield loop: the vault's token is redeployed as
liquidity to stack fees on top of the vault rate.
"""
from __future__ import annotations

from collections.abc import Sequence

from .models import DetectedStrategy, Position, PositionType, StrategyStep


def lp_legs(asset_label: str) -> tuple[str, ...]:
    """Lowercase token symbols of an LP label like ``'WETH/USDM 0.30%'``."""
    pair = asset_label.split(" ", 1)[0]
    if "/" not in pair:
        return ()
    return tuple(leg.lower() for leg in pair.split("/") if leg)


def _order(position: Position) -> tuple:
    return (
        position.protocol,
        position.asset,
        position.asset_address.lower(),
        position.position_id,
        -position.deposited_usd,
        -position.current_apy,
    )


def loop_positions(positions: Sequence[Position]) -> list[Position]:
    """LP positions that hold a token some deposit position produces."""
    deposit_assets = {
        p.asset.lower() for p in positions if p.position_type is not PositionType.LP
    }
    return [
        p
        for p in positions
        if p.position_type is PositionType.LP
        and deposit_assets.intersection(lp_legs(p.asset))
    ]


def complexity_label(step_count: int) -> str:
    if step_count >= 3:
        return "Advanced"
    if step_count == 2:
        return "Intermediate"
    return "Simple"


def detect_strategy(positions: Sequence[Position]) -> DetectedStrategy | None:
    """Describe the position set as ordered steps; None when there are none.

    Deposits come first, then liquidity positions, each group in a fixed
    order so the result does not depend on input order.
    """
    if not positions:
        return None

    deposits = sorted(
        (p for p in positions if p.position_type is not PositionType.LP), key=_order
    )
    lps = sorted((p for p in positions if p.position_type is PositionType.LP), key=_order)
    looped = loop_positions(positions)
    deposit_assets = {p.asset.lower(): p.asset for p in deposits}

    steps: list[StrategyStep] = []
    for p in deposits:
        steps.append(
            StrategyStep(
                protocol=p.protocol,
                action=f"Deposit {p.asset}",
                input_token=p.asset,
                output_token=p.asset,
                apy=p.current_apy,
                value_usd=p.deposited_usd,
            )
        )
    for p in lps:
        legs = lp_legs(p.asset)
        pair = p.asset.split(" ", 1)[0]
        reused = [deposit_assets[leg] for leg in legs if leg in deposit_assets]
        if reused:
            input_token = reused[0]
        else:
            input_token = pair.split("/")[0] if legs else p.asset
        steps.append(
            StrategyStep(
                protocol=p.protocol,
                action=f"Provide {pair} liquidity",
                input_token=input_token,
                output_token="LP fees",
                apy=p.current_apy,
                value_usd=p.deposited_usd,
            )
        )

    is_loop = bool(looped)
    chain = " → ".join(dict.fromkeys(s.protocol for s in steps))
    if is_loop:
        name = f"Yield Loop: {chain}"
    elif len(steps) > 1:
        name = f"Multi-Protocol: {chain}"
    elif deposits:
        name = f"{steps[0].protocol} Vault"
    else:
        name = f"{steps[0].protocol} Liquidity"

    return DetectedStrategy(
        name=name,
        steps=tuple(steps),
        base_apy=steps[0].apy,
        bonus_apy=sum(s.apy for s in steps[1:]),
        complexity=complexity_label(len(steps)),
        is_loop=is_loop,
        total_value=sum(s.value_usd for s in steps),
    )
