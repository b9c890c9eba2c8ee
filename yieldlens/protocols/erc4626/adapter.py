"""ERC-4626 vault position reader."""
from __future__ import annotations

import logging
import time
from typing import Callable

from ...chains.evm.abi import normalize_address
from ...formatting import format_token_amount
from ...interfaces.chain import ChainClient
from ...interfaces.market_data import MarketData
from ...models import ContractCall, Position, ProtocolConfig, UnderlyingToken
from ..common import (
    ASSUMED_POSITION_AGE_DAYS,
    PROBE_ADDRESS,
    balance_of,
    estimated_entry_timestamp,
)

logger = logging.getLogger(__name__)


class ERC4626Reader:
    """Read a wallet's share balance in one vault and value it in USD."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: ProtocolConfig,
        market: MarketData,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = chain_client
        self._config = config
        self._market = market
        self._clock = clock
        self._vault = config.contracts.vault

    @property
    def protocol_name(self) -> str:
        return self._config.name

    async def test_connection(self) -> bool:
        """Zero-balance probe against the vault."""
        if not self._vault:
            return False
        try:
            await self._client.call(balance_of(self._vault, PROBE_ADDRESS))
            return True
        except Exception as e:
            logger.debug("%s connection probe failed: %s", self.protocol_name, e)
            return False

    def _underlying_price(self, underlying: UnderlyingToken) -> float:
        """Snapshot price when the market feed has one, else the configured price."""
        info = self._market.token(underlying.address) if underlying.address else None
        if info is not None and info.price_usd > 0:
            return info.price_usd
        return underlying.price_usd

    async def fetch_positions(self, wallet_address: str) -> list[Position]:
        underlying = self._config.underlying_token
        if not self._vault or underlying is None:
            logger.warning("%s has no vault/underlying token configured", self.protocol_name)
            return []

        owner = normalize_address(wallet_address)
        logger.info("Checking %s vault for wallet: %s", self.protocol_name, owner)

        (shares,) = await self._client.call(balance_of(self._vault, owner))
        if shares == 0:
            return []

        (assets,) = await self._client.call(
            ContractCall(
                to=self._vault,
                function="convertToAssets",
                input_types=("uint256",),
                args=(shares,),
                output_types=("uint256",),
            )
        )

        balance = assets / 10**underlying.decimals
        deposited_usd = balance * self._underlying_price(underlying)
        apy = self._config.apy_estimate
        yield_earned = deposited_usd * (apy / 100) * (ASSUMED_POSITION_AGE_DAYS / 365)

        logger.info(
            "%s: %s %s ($%.2f) at %.2f%% APY",
            self.protocol_name,
            format_token_amount(assets, underlying.decimals, 6),
            underlying.symbol,
            deposited_usd,
            apy,
        )

        return [
            Position(
                protocol=self._config.name,
                protocol_logo=self._config.logo,
                asset=underlying.symbol,
                asset_address=underlying.address,
                deposited_amount=int(assets),
                deposited_usd=max(deposited_usd, 0.0),
                current_apy=apy,
                yield_earned=yield_earned,
                position_type=self._config.position_type,
                entry_timestamp=estimated_entry_timestamp(int(self._clock())),
            )
        ]
