"""Protocol position readers, one variant per protocol template."""
from __future__ import annotations

from typing import Any, Callable

from ..interfaces.chain import ChainClient
from ..interfaces.market_data import MarketData
from ..interfaces.price_oracle import ReferencePriceSource
from ..interfaces.protocol_adapter import PositionReader
from ..models import ProtocolConfig, ProtocolTemplate
from .erc4626 import ERC4626Reader
from .univ3 import UniV3Reader

ReaderFactory = Callable[
    [ChainClient, ProtocolConfig, MarketData, ReferencePriceSource], Any
]

# Registry of reader factories keyed by template.
_READER_FACTORIES: dict[ProtocolTemplate, ReaderFactory] = {
    ProtocolTemplate.ERC4626: lambda client, cfg, market, prices: ERC4626Reader(
        client, cfg, market
    ),
    ProtocolTemplate.UNIV3: lambda client, cfg, market, prices: UniV3Reader(
        client, cfg, market, prices
    ),
}


def build_reader(
    config: ProtocolConfig,
    chain_client: ChainClient,
    market: MarketData,
    price_source: ReferencePriceSource,
) -> PositionReader:
    """Build the reader for ``config.template``."""
    factory = _READER_FACTORIES.get(config.template)
    if factory is None:
        raise ValueError(f"No reader for protocol template '{config.template}'")
    return factory(chain_client, config, market, price_source)


__all__ = ["ERC4626Reader", "UniV3Reader", "build_reader"]
