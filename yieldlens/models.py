"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class PositionType(str, Enum):
    LENDING = "lending"
    STAKING = "staking"
    LP = "lp"
    BOND = "bond"


class ProtocolTemplate(str, Enum):
    """Reader variant used for a configured protocol."""

    ERC4626 = "erc4626"
    UNIV3 = "univ3"


@dataclass(frozen=True)
class Position:
    """One valued stake in one protocol.

    ``deposited_amount`` is in the asset's smallest on-chain unit; the decimal
    count lives on the protocol/token config, not here.
    ``in_range`` is only set for concentrated-liquidity (``lp``) positions.
    ``position_id`` tells apart several positions on one asset, e.g. the NFT
    token id of each range in the same pool.
    """

    protocol: str
    protocol_logo: str
    asset: str
    asset_address: str
    deposited_amount: int
    deposited_usd: float
    current_apy: float
    yield_earned: float
    position_type: PositionType
    entry_timestamp: int
    in_range: bool | None = None
    position_id: str = ""

    def __post_init__(self) -> None:
        if self.deposited_usd < 0:
            raise ValueError(
                f"deposited_usd must be >= 0, got {self.deposited_usd}"
            )
        is_lp = self.position_type == PositionType.LP
        if is_lp and self.in_range is None:
            raise ValueError("lp positions must carry an in_range flag")
        if not is_lp and self.in_range is not None:
            raise ValueError(
                f"in_range is only defined for lp positions, not {self.position_type.value}"
            )


@dataclass(frozen=True)
class TokenInfo:
    """Market-data snapshot for one token."""

    address: str
    symbol: str
    decimals: int
    price_usd: float = 0.0
    logo: str = ""


@dataclass(frozen=True)
class PoolInfo:
    """Market-data snapshot for one pool."""

    address: str
    token0: str
    token1: str
    fee_apy: float | None = None


@dataclass(frozen=True)
class UnderlyingToken:
    address: str
    symbol: str
    decimals: int
    price_usd: float = 0.0


@dataclass(frozen=True)
class ProtocolContracts:
    vault: str = ""
    position_manager: str = ""
    factory: str = ""


@dataclass(frozen=True)
class ProtocolConfig:
    """Static description of one yield source."""

    id: str
    name: str
    template: ProtocolTemplate
    chain: str
    logo: str = ""
    enabled: bool = True
    contracts: ProtocolContracts = field(default_factory=ProtocolContracts)
    underlying_token: UnderlyingToken | None = None
    apy_estimate: float = 0.0
    position_type: PositionType = PositionType.LENDING
    added_at: int = 0


@dataclass(frozen=True)
class StrategyStep:
    """One hop of a strategy, e.g. a vault deposit or an LP range."""

    protocol: str
    action: str
    input_token: str
    output_token: str
    apy: float
    value_usd: float


@dataclass(frozen=True)
class DetectedStrategy:
    """How a position set chains its yield sources.

    ``base_apy`` is the first step's rate; ``bonus_apy`` stacks the rest.
    ``is_loop`` is set when a vault's token is redeployed as an LP leg.
    """

    name: str
    steps: tuple[StrategyStep, ...]
    base_apy: float
    bonus_apy: float
    complexity: str
    is_loop: bool
    total_value: float

    @property
    def total_apy(self) -> float:
        return self.base_apy + self.bonus_apy


@dataclass(frozen=True)
class PortfolioMetrics:
    """Aggregate metrics derived from a position list."""

    total_deposited: float
    total_yield_earned: float
    weighted_apy: float
    yield_score: int
    strategy_tags: tuple[str, ...]
    tier: str
    position_count: int = 0
    strategy: DetectedStrategy | None = None


@dataclass(frozen=True)
class ContractCall:
    """A read-only contract call, e.g. ``positions(uint256)`` on a manager."""

    to: str
    function: str
    input_types: tuple[str, ...] = ()
    args: tuple[Any, ...] = ()
    output_types: tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.function}({','.join(self.input_types)})"


@dataclass(frozen=True)
class CallResult:
    """Outcome of one call inside a batch; failures don't abort the batch."""

    success: bool
    value: tuple[Any, ...] = ()
    error: str = ""


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """Success-or-skip outcome of one independent read."""

    source: str
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, source: str, value: T) -> ReadResult[T]:
        return cls(source=source, value=value)

    @classmethod
    def skipped(cls, source: str, error: BaseException | str) -> ReadResult[T]:
        message = str(error)
        if not message and isinstance(error, BaseException):
            # e.g. asyncio.TimeoutError() has an empty message
            message = type(error).__name__
        return cls(source=source, error=message or "unknown error")
