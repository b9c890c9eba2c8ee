"""Concurrent position aggregation across protocol readers."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from ..interfaces.protocol_adapter import PositionReader
from ..models import Position, ReadResult

logger = logging.getLogger(__name__)


def dedupe_positions(positions: Iterable[Position]) -> list[Position]:
    """Drop repeats of the same protocol + asset address + position id.

    The first one wins. Distinct positions on one asset (several NFT ranges in
    one pool) carry different ids and are all kept.
    """
    seen: set[tuple[str, str, str]] = set()
    unique: list[Position] = []
    for position in positions:
        key = (
            position.protocol,
            position.asset_address.lower(),
            position.position_id,
        )
        if key in seen:
            continue
        seen.add(key)
        unique.append(position)
    return unique


def positions_from(results: Iterable[ReadResult[list[Position]]]) -> list[Position]:
    """Concatenate successful reads, deduplicated."""
    return dedupe_positions(p for r in results if r.ok and r.value for p in r.value)


class PositionService:
    """Run every reader for a wallet and concatenate what comes back.

    Readers run concurrently; one that raises becomes a skipped result and the
    others still count. Empty output is a valid answer.
    """

    def __init__(self, readers: Mapping[str, PositionReader]) -> None:
        self._readers = dict(readers)

    @property
    def reader_names(self) -> list[str]:
        return list(self._readers)

    async def fetch_results(self, wallet_address: str) -> list[ReadResult[list[Position]]]:
        names = list(self._readers)
        outcomes = await asyncio.gather(
            *(self._readers[name].fetch_positions(wallet_address) for name in names),
            return_exceptions=True,
        )

        results: list[ReadResult[list[Position]]] = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Reader %s failed for %s: %s", name, wallet_address, outcome)
                results.append(ReadResult.skipped(name, outcome))
            else:
                results.append(ReadResult.success(name, list(outcome)))
        return results

    async def fetch_positions(self, wallet_address: str) -> list[Position]:
        results = await self.fetch_results(wallet_address)
        unique = positions_from(results)
        logger.info(
            "Wallet %s: %d positions from %d/%d readers",
            wallet_address,
            len(unique),
            sum(1 for r in results if r.ok),
            len(results),
        )
        return unique
