"""Integration tests for portfolio orchestration and the CLI runner."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import WALLET, make_position
from yieldlens.cli import _run
from yieldlens.config import AppConfig
from yieldlens.market import StaticMarketData
from yieldlens.models import PositionType, ProtocolConfig
from yieldlens.services import Portfolio, format_report


def _fake_reader_factory(outcomes: dict[str, object]):
    """build_reader replacement keyed by protocol id."""

    def build(config: ProtocolConfig, chain_client, market, price_source) -> MagicMock:
        reader = MagicMock()
        reader.protocol_name = config.name
        outcome = outcomes[config.id]
        if isinstance(outcome, Exception):
            reader.fetch_positions = AsyncMock(side_effect=outcome)
            reader.test_connection = AsyncMock(return_value=False)
        else:
            reader.fetch_positions = AsyncMock(return_value=outcome)
            reader.test_connection = AsyncMock(return_value=True)
        return reader

    return build


@pytest.fixture()
def portfolio(sample_app_config: AppConfig, market: StaticMarketData) -> Portfolio:
    price_source = AsyncMock()
    price_source.get_price.return_value = 3000.0
    return Portfolio(sample_app_config, market=market, price_source=price_source)


class TestPortfolio:
    def test_wallets(self, portfolio: Portfolio) -> None:
        assert portfolio.wallets() == [("main", WALLET)]
        assert portfolio.wallets("0xabc") == [("cli", "0xabc")]

    def test_readers_follow_enabled_protocols(self, portfolio: Portfolio) -> None:
        assert portfolio.position_service().reader_names == ["avon", "prism"]
        portfolio.registry.toggle("prism")
        assert portfolio.position_service().reader_names == ["avon"]

    @pytest.mark.asyncio
    async def test_build_report(self, portfolio: Portfolio) -> None:
        lending = make_position(deposited_usd=10000.0, current_apy=5.0, yield_earned=50.0)
        lp = make_position(
            protocol="Prism",
            deposited_usd=5000.0,
            current_apy=20.0,
            position_type=PositionType.LP,
            in_range=True,
        )
        factory = _fake_reader_factory({"avon": [lending], "prism": [lp]})
        with patch("yieldlens.services.portfolio.build_reader", side_effect=factory):
            report = await portfolio.build_report(WALLET, "main")

        assert report.wallet_label == "main"
        assert len(report.positions) == 2
        assert report.metrics.total_deposited == 15000.0
        assert report.metrics.weighted_apy == 10.0
        assert report.skipped == ()

        text = format_report(report)
        assert "Weighted APY: 10.00%" in text
        assert "Total deposited: $15.00K" in text
        assert "Strategy: Multi-Protocol: Avon → Prism (Intermediate)" in text
        assert "base 5.00% + bonus 20.00% = 25.00%" in text
        assert "  1. Avon: Deposit USDM (5.00%)" in text

    @pytest.mark.asyncio
    async def test_failed_reader_is_reported(self, portfolio: Portfolio) -> None:
        lending = make_position()
        factory = _fake_reader_factory({"avon": [lending], "prism": RuntimeError("rpc down")})
        with patch("yieldlens.services.portfolio.build_reader", side_effect=factory):
            report = await portfolio.build_report(WALLET)

        assert report.positions == (lending,)
        assert [r.source for r in report.skipped] == ["prism"]
        assert "prism unavailable: rpc down" in format_report(report, show_positions=False)

    @pytest.mark.asyncio
    async def test_empty_report(self, portfolio: Portfolio) -> None:
        factory = _fake_reader_factory({"avon": [], "prism": []})
        with patch("yieldlens.services.portfolio.build_reader", side_effect=factory):
            (report,) = await portfolio.build_reports()

        assert report.metrics.yield_score == 0
        assert report.metrics.strategy_tags == ()
        assert "No active positions found." in format_report(report)
        assert "Strategy:" not in format_report(report)

    @pytest.mark.asyncio
    async def test_check_protocols(self, portfolio: Portfolio) -> None:
        factory = _fake_reader_factory({"avon": [], "prism": RuntimeError("down")})
        with patch("yieldlens.services.portfolio.build_reader", side_effect=factory):
            status = await portfolio.check_protocols()
        assert status == {"avon": True, "prism": False}

    @pytest.mark.asyncio
    async def test_run_continuous_refreshes_until_cancelled(self, portfolio: Portfolio) -> None:
        factory = _fake_reader_factory({"avon": [], "prism": []})
        sleep = AsyncMock(side_effect=asyncio.CancelledError())
        with patch("yieldlens.services.portfolio.build_reader", side_effect=factory):
            with patch("yieldlens.services.portfolio.asyncio.sleep", sleep):
                with pytest.raises(asyncio.CancelledError):
                    await portfolio.run_continuous(interval_minutes=2)
        sleep.assert_awaited_once_with(120)


def _args(config: Path, command: str, **extra) -> argparse.Namespace:
    return argparse.Namespace(config=str(config), log_level="WARNING", command=command, **extra)


class TestCliRun:
    @pytest.mark.asyncio
    async def test_protocols_command(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(_args(sample_yaml_path, "protocols")) == 0
        out = capsys.readouterr().out
        assert "Avon [avon] erc4626 on megaeth" in out
        assert "Prism [prism] univ3" in out

    @pytest.mark.asyncio
    async def test_score_without_wallets_fails(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("chains: {}\n")
        assert await _run(_args(cfg_file, "score", wallet=None)) == 1

    @pytest.mark.asyncio
    async def test_check_command_exit_code(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch(
            "yieldlens.cli.Portfolio.check_protocols",
            AsyncMock(return_value={"avon": True, "prism": False}),
        ):
            assert await _run(_args(sample_yaml_path, "check")) == 1
        assert "❌ prism" in capsys.readouterr().out
