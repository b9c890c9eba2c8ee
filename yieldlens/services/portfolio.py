"""Portfolio orchestration: wallets x enabled protocols to positions to score."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from ..chains.evm import EvmClient
from ..config import AppConfig
from ..formatting import (
    format_apy,
    format_position_age,
    format_usd,
    format_usd_compact,
    truncate_address,
)
from ..interfaces.chain import ChainClient
from ..interfaces.market_data import MarketData
from ..interfaces.price_oracle import ReferencePriceSource
from ..interfaces.protocol_adapter import PositionReader
from ..market import StaticMarketData
from ..models import PortfolioMetrics, Position, ReadResult
from ..oracles import get_default_cache
from ..protocols import build_reader
from ..registry import ProtocolRegistry
from ..scoring import summarize
from .position_service import PositionService, positions_from

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletReport:
    wallet_address: str
    wallet_label: str
    positions: tuple[Position, ...]
    metrics: PortfolioMetrics
    skipped: tuple[ReadResult[list[Position]], ...] = ()


class Portfolio:
    """Wires chain clients, market data, the price cache and the registry."""

    def __init__(
        self,
        config: AppConfig,
        market: MarketData | None = None,
        price_source: ReferencePriceSource | None = None,
        registry: ProtocolRegistry | None = None,
    ) -> None:
        self._config = config

        # Build chain clients
        self._chain_clients: dict[str, ChainClient] = {}
        for chain_name, chain_cfg in config.chains.items():
            self._chain_clients[chain_name] = EvmClient(chain_cfg)

        self._market = market or StaticMarketData.from_config(config.market)
        self._price_source = price_source or get_default_cache(config.reference_price)
        self.registry = registry or ProtocolRegistry(config.protocols, config.chains)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def _build_readers(self) -> dict[str, PositionReader]:
        readers: dict[str, PositionReader] = {}
        for protocol in self.registry.enabled():
            chain_client = self._chain_clients.get(protocol.chain)
            if chain_client is None:
                logger.warning(
                    "Protocol '%s' references unknown chain '%s'", protocol.id, protocol.chain
                )
                continue
            readers[protocol.id] = build_reader(
                protocol, chain_client, self._market, self._price_source
            )
        return readers

    def position_service(self) -> PositionService:
        return PositionService(self._build_readers())

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    def wallets(self, override: str | None = None) -> list[tuple[str, str]]:
        """(label, address) pairs to read."""
        if override:
            return [("cli", override)]
        return [(w.label or w.address, w.address) for w in self._config.wallets]

    async def build_report(self, wallet_address: str, wallet_label: str = "") -> WalletReport:
        service = self.position_service()
        results = await service.fetch_results(wallet_address)
        positions = positions_from(results)
        metrics = summarize(positions, int(time.time()))
        return WalletReport(
            wallet_address=wallet_address,
            wallet_label=wallet_label or wallet_address,
            positions=tuple(positions),
            metrics=metrics,
            skipped=tuple(r for r in results if not r.ok),
        )

    async def build_reports(self, wallet_override: str | None = None) -> list[WalletReport]:
        wallets = self.wallets(wallet_override)
        return list(
            await asyncio.gather(
                *(self.build_report(address, label) for label, address in wallets)
            )
        )

    async def check_protocols(self) -> dict[str, bool]:
        """Reachability of every enabled protocol's main contract."""
        readers = self._build_readers()
        names = list(readers)
        outcomes = await asyncio.gather(*(readers[n].test_connection() for n in names))
        return dict(zip(names, outcomes))

    async def run_continuous(
        self, interval_minutes: int | None = None, wallet_override: str | None = None
    ) -> None:
        """Rebuild and log reports on a fixed interval."""
        interval = interval_minutes or self._config.refresh_interval_minutes
        logger.info("Starting continuous refresh (every %d minutes)", interval)

        while True:
            try:
                for report in await self.build_reports(wallet_override):
                    logger.info("\n%s", format_report(report))
                await asyncio.sleep(interval * 60)
            except Exception as e:
                logger.error("Error in refresh loop: %s", e)
                await asyncio.sleep(60)


# ----------------------------------------------------------------------
# Formatting
# ----------------------------------------------------------------------


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_position_line(position: Position, now: int | None = None) -> str:
    range_note = ""
    if position.in_range is True:
        range_note = " · in range"
    elif position.in_range is False:
        range_note = " · OUT OF RANGE"
    logo = f"{position.protocol_logo} " if position.protocol_logo else ""
    return (
        f"{logo}{position.protocol} · {position.asset} ({position.position_type.value})\n"
        f"  Deposited: {format_usd(position.deposited_usd)} · "
        f"APY: {format_apy(position.current_apy)} · "
        f"Earned: {format_usd(position.yield_earned)}{range_note}\n"
        f"  Age: {format_position_age(position.entry_timestamp, now)}"
    )


def format_report(report: WalletReport, show_positions: bool = True) -> str:
    m = report.metrics
    lines = [
        f"━━ {report.wallet_label} ({truncate_address(report.wallet_address)}) ━━",
        "",
    ]
    if show_positions:
        if report.positions:
            lines.extend(format_position_line(p) for p in report.positions)
        else:
            lines.append("No active positions found.")
        lines.append("")

    lines.extend(
        [
            f"Total deposited: {format_usd_compact(m.total_deposited)}",
            f"Yield earned: {format_usd(m.total_yield_earned)}",
            f"Weighted APY: {format_apy(m.weighted_apy)}",
            f"Yield score: {m.yield_score}/100 ({m.tier})",
            f"Tags: {', '.join(m.strategy_tags) if m.strategy_tags else 'none'}",
        ]
    )
    if m.strategy is not None:
        s = m.strategy
        lines.append(
            f"Strategy: {s.name} ({s.complexity}) · base {format_apy(s.base_apy)}"
            f" + bonus {format_apy(s.bonus_apy)} = {format_apy(s.total_apy)}"
        )
        for i, step in enumerate(s.steps, 1):
            lines.append(f"  {i}. {step.protocol}: {step.action} ({format_apy(step.apy)})")
    for result in report.skipped:
        lines.append(f"⚠️ {result.source} unavailable: {result.error}")
    lines.extend(["", f"{_now_str()} UTC"])
    return "\n".join(lines)
