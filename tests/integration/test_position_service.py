"""Integration tests for concurrent position aggregation."""
from __future__ import annotations

import asyncio
import dataclasses
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import POOL, WALLET, make_position
from yieldlens.models import PositionType, ReadResult
from yieldlens.scoring import total_deposited
from yieldlens.services.position_service import (
    PositionService,
    dedupe_positions,
    positions_from,
)


def _reader(name: str, result=None, error: BaseException | None = None) -> MagicMock:
    reader = MagicMock()
    reader.protocol_name = name
    reader.fetch_positions = AsyncMock(side_effect=error, return_value=result or [])
    return reader


class TestDedupe:
    def test_repeated_position_collapses(self) -> None:
        first = make_position(asset_address=POOL.upper().replace("0X", "0x"), deposited_usd=1.0)
        second = make_position(asset_address=POOL, deposited_usd=2.0)
        assert dedupe_positions([first, second]) == [first]

    def test_ranges_in_one_pool_are_kept(self) -> None:
        narrow = make_position(
            protocol="Kumbaya",
            asset_address=POOL,
            deposited_usd=1000.0,
            position_type=PositionType.LP,
            in_range=True,
            position_id="41",
        )
        wide = dataclasses.replace(narrow, deposited_usd=4000.0, in_range=False, position_id="42")

        kept = positions_from([ReadResult.success("kumbaya", [narrow, wide])])
        assert kept == [narrow, wide]
        assert total_deposited(kept) == 5000.0

    def test_same_nft_from_two_reads_collapses(self) -> None:
        lp = make_position(
            protocol="Kumbaya", position_type=PositionType.LP, in_range=True, position_id="41"
        )
        assert dedupe_positions([lp, dataclasses.replace(lp, deposited_usd=2.0)]) == [lp]

    def test_different_protocols_kept(self) -> None:
        a = make_position(protocol="Avon")
        b = make_position(protocol="Prism", position_type=PositionType.LP, in_range=True)
        assert dedupe_positions([a, b]) == [a, b]

    def test_positions_from_ignores_skipped(self) -> None:
        a = make_position()
        results = [ReadResult.success("Avon", [a]), ReadResult.skipped("Prism", "boom")]
        assert positions_from(results) == [a]


class TestPositionService:
    @pytest.mark.asyncio
    async def test_concatenates_readers(self) -> None:
        a = make_position(protocol="Avon")
        b = make_position(protocol="Prism", position_type=PositionType.LP, in_range=False)
        service = PositionService({"avon": _reader("Avon", [a]), "prism": _reader("Prism", [b])})

        positions = await service.fetch_positions(WALLET)
        assert sorted(p.protocol for p in positions) == ["Avon", "Prism"]

    @pytest.mark.asyncio
    async def test_failing_reader_is_skipped(self) -> None:
        a = make_position(protocol="Avon")
        service = PositionService(
            {
                "avon": _reader("Avon", [a]),
                "prism": _reader("Prism", error=RuntimeError("All RPC endpoints failed")),
                "kumbaya": _reader("Kumbaya", error=ValueError("Invalid address: 'x'")),
            }
        )

        results = await service.fetch_results(WALLET)
        assert [r.source for r in results] == ["avon", "prism", "kumbaya"]
        assert [r.ok for r in results] == [True, False, False]
        assert "All RPC endpoints failed" in results[1].error
        assert await service.fetch_positions(WALLET) == [a]

    @pytest.mark.asyncio
    async def test_empty_is_valid(self) -> None:
        service = PositionService({"avon": _reader("Avon", [])})
        assert await service.fetch_positions(WALLET) == []
        assert await PositionService({}).fetch_positions(WALLET) == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        service = PositionService({"avon": _reader("Avon", error=asyncio.CancelledError())})
        with pytest.raises(asyncio.CancelledError):
            await service.fetch_results(WALLET)

    def test_reader_names(self) -> None:
        service = PositionService({"avon": _reader("Avon"), "prism": _reader("Prism")})
        assert service.reader_names == ["avon", "prism"]
