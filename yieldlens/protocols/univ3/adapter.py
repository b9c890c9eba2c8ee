"""Concentrated-liquidity (Uniswap V3 fork) position reader."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ...chains.evm.abi import is_zero_address, normalize_address
from ...interfaces.chain import ChainClient
from ...interfaces.market_data import MarketData
from ...interfaces.price_oracle import ReferencePriceSource
from ...models import (
    CallResult,
    ContractCall,
    Position,
    PositionType,
    ProtocolConfig,
    ReadResult,
)
from ...pricing import is_wrapped_native, tick_to_adjusted_price
from ..common import PROBE_ADDRESS, balance_of, estimated_entry_timestamp
from . import parser
from .parser import RawPosition, TokenMeta

logger = logging.getLogger(__name__)


class UniV3Reader:
    """Read NFT liquidity positions from a position manager + factory pair."""

    def __init__(
        self,
        chain_client: ChainClient,
        config: ProtocolConfig,
        market: MarketData,
        price_source: ReferencePriceSource,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = chain_client
        self._config = config
        self._market = market
        self._price_source = price_source
        self._clock = clock
        self._position_manager = config.contracts.position_manager
        self._factory = config.contracts.factory

    @property
    def protocol_name(self) -> str:
        return self._config.name

    async def test_connection(self) -> bool:
        """Zero-balance probe against the position manager."""
        if not self._position_manager:
            return False
        try:
            await self._client.call(balance_of(self._position_manager, PROBE_ADDRESS))
            return True
        except Exception as e:
            logger.debug("%s connection probe failed: %s", self.protocol_name, e)
            return False

    # ------------------------------------------------------------------
    # Batched reads
    # ------------------------------------------------------------------

    async def _token_ids(self, owner: str, count: int) -> list[int]:
        calls = [
            ContractCall(
                to=self._position_manager,
                function="tokenOfOwnerByIndex",
                input_types=("address", "uint256"),
                args=(owner, i),
                output_types=("uint256",),
            )
            for i in range(count)
        ]
        results = await self._client.multicall(calls)
        return [int(r.value[0]) for r in results if r.success]

    async def _read_positions(
        self, token_ids: list[int]
    ) -> tuple[list[RawPosition], list[ReadResult[Position]]]:
        """Return live positions plus skip records for unreadable ids."""
        calls = [
            ContractCall(
                to=self._position_manager,
                function="positions",
                input_types=("uint256",),
                args=(token_id,),
                output_types=parser.POSITION_OUTPUT_TYPES,
            )
            for token_id in token_ids
        ]
        results = await self._client.multicall(calls)

        live: list[RawPosition] = []
        skipped: list[ReadResult[Position]] = []
        for token_id, result in zip(token_ids, results):
            source = self._source(token_id)
            if not result.success:
                # stale or burned ids revert
                skipped.append(ReadResult.skipped(source, result.error or "call failed"))
                continue
            try:
                raw = parser.parse_position_tuple(token_id, result.value)
            except ValueError as e:
                skipped.append(ReadResult.skipped(source, e))
                continue
            if raw.liquidity > 0:
                live.append(raw)
        return live, skipped

    async def _token_metadata(self, addresses: list[str]) -> dict[str, TokenMeta]:
        meta: dict[str, TokenMeta] = {}
        unknown: list[str] = []
        for address in addresses:
            info = self._market.token(address)
            if info is not None:
                meta[address.lower()] = TokenMeta(symbol=info.symbol, decimals=info.decimals)
            else:
                unknown.append(address)

        if not unknown:
            return meta

        symbol_results, decimals_results = await asyncio.gather(
            self._client.multicall(
                [ContractCall(to=a, function="symbol", output_types=("string",)) for a in unknown]
            ),
            self._client.multicall(
                [ContractCall(to=a, function="decimals", output_types=("uint8",)) for a in unknown]
            ),
        )
        for address, sym, dec in zip(unknown, symbol_results, decimals_results):
            meta[address.lower()] = TokenMeta(
                symbol=str(sym.value[0]) if sym.success else parser.UNKNOWN_SYMBOL,
                decimals=int(dec.value[0]) if dec.success else parser.DEFAULT_DECIMALS,
            )
        return meta

    async def _pool_addresses(self, positions: list[RawPosition]) -> list[str | None]:
        calls = [
            ContractCall(
                to=self._factory,
                function="getPool",
                input_types=("address", "address", "uint24"),
                args=(p.token0, p.token1, p.fee),
                output_types=("address",),
            )
            for p in positions
        ]
        results = await self._client.multicall(calls)
        pools: list[str | None] = []
        for result in results:
            address = result.value[0] if result.success else None
            pools.append(None if is_zero_address(address) else address)
        return pools

    async def _sqrt_prices(self, pools: list[str | None]) -> dict[str, int]:
        unique = sorted({p.lower() for p in pools if p})
        if not unique:
            return {}
        results: list[CallResult] = await self._client.multicall(
            [
                ContractCall(to=p, function="slot0", output_types=parser.SLOT0_OUTPUT_TYPES)
                for p in unique
            ]
        )
        return {
            pool: int(result.value[0])
            for pool, result in zip(unique, results)
            if result.success
        }

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _source(self, token_id: int) -> str:
        return f"{self.protocol_name}#{token_id}"

    def _build_position(
        self,
        raw: RawPosition,
        pool: str | None,
        sqrt_price_x96: int | None,
        token_meta: dict[str, TokenMeta],
        reference_price: float | None,
        now: int,
    ) -> Position:
        t0 = token_meta.get(raw.token0.lower(), TokenMeta())
        t1 = token_meta.get(raw.token1.lower(), TokenMeta())

        price0, price1 = (0.0, 0.0)
        if sqrt_price_x96:
            price0, price1 = parser.resolve_leg_prices(
                raw.token0,
                raw.token1,
                sqrt_price_x96,
                t0.decimals,
                t1.decimals,
                reference_price,
                self._market,
            )
        valuation = parser.value_position(
            raw, sqrt_price_x96, t0.decimals, t1.decimals, price0, price1
        )

        pool_info = self._market.pool(pool) if pool else None
        if pool_info is not None and pool_info.fee_apy is not None:
            apy = pool_info.fee_apy
        else:
            apy = self._config.apy_estimate

        logger.debug(
            "%s #%d %s/%s range [%.6g, %.6g] %s per %s in_range=%s value=$%.2f",
            self.protocol_name,
            raw.token_id,
            t0.symbol,
            t1.symbol,
            tick_to_adjusted_price(raw.tick_lower, t0.decimals, t1.decimals),
            tick_to_adjusted_price(raw.tick_upper, t0.decimals, t1.decimals),
            t1.symbol,
            t0.symbol,
            valuation.in_range,
            valuation.deposited_usd,
        )

        return Position(
            protocol=self._config.name,
            protocol_logo=self._config.logo,
            asset=parser.asset_label(t0.symbol, t1.symbol, raw.fee),
            asset_address=pool or raw.token0,
            deposited_amount=raw.liquidity,
            deposited_usd=valuation.deposited_usd,
            current_apy=apy,
            yield_earned=valuation.yield_earned,
            position_type=PositionType.LP,
            entry_timestamp=estimated_entry_timestamp(now),
            in_range=valuation.in_range,
            position_id=str(raw.token_id),
        )

    async def fetch_positions(self, wallet_address: str) -> list[Position]:
        """Fetch all open LP positions for a wallet.

        Unreadable positions are skipped; an invalid wallet address raises
        ValueError.
        """
        if not self._position_manager or not self._factory:
            logger.warning(
                "%s has no position manager/factory configured", self.protocol_name
            )
            return []

        owner = normalize_address(wallet_address)
        logger.info("Checking %s positions for wallet: %s", self.protocol_name, owner)

        (balance,) = await self._client.call(balance_of(self._position_manager, owner))
        if balance == 0:
            return []
        logger.info("Found %d %s position NFTs", balance, self.protocol_name)

        token_ids = await self._token_ids(owner, int(balance))
        raw_positions, results = await self._read_positions(token_ids)
        if not raw_positions:
            self._log_skipped(results)
            return []

        addresses = sorted(
            {p.token0.lower() for p in raw_positions} | {p.token1.lower() for p in raw_positions}
        )
        token_meta = await self._token_metadata(addresses)
        pools = await self._pool_addresses(raw_positions)
        sqrt_prices = await self._sqrt_prices(pools)

        reference_price: float | None = None
        if any(is_wrapped_native(a) for a in addresses):
            reference_price = await self._price_source.get_price()

        now = int(self._clock())
        for raw, pool in zip(raw_positions, pools):
            source = self._source(raw.token_id)
            sqrt_price = sqrt_prices.get(pool.lower()) if pool else None
            try:
                position = self._build_position(
                    raw, pool, sqrt_price, token_meta, reference_price, now
                )
            except Exception as e:
                results.append(ReadResult.skipped(source, e))
                continue
            results.append(ReadResult.success(source, position))

        self._log_skipped(results)
        return [r.value for r in results if r.ok and r.value is not None]

    def _log_skipped(self, results: list[ReadResult[Position]]) -> None:
        for result in results:
            if not result.ok:
                logger.warning("Skipping %s: %s", result.source, result.error)
