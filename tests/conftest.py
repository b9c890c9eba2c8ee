"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from yieldlens.config import AppConfig, ChainConfig, MarketConfig, WalletConfig
from yieldlens.market import StaticMarketData
from yieldlens.models import (
    PoolInfo,
    Position,
    PositionType,
    ProtocolConfig,
    ProtocolContracts,
    ProtocolTemplate,
    TokenInfo,
    UnderlyingToken,
)

NOW = 1_750_000_000
DAY = 86_400

WALLET = "0x1111111111111111111111111111111111111111"
VAULT = "0x2ea493384f42d7ea78564f3ef4c86986eab4a890"
USDM = "0xfafddbb3fc7688494971a79cc65dca3ef82079e7"
POSITION_MANAGER = "0xcb91c75a6b29700756d4411495be696c4e9a576e"
FACTORY = "0x1adb8f973373505bb206e0e5d87af8fb1f5514ef"
WETH = "0x4200000000000000000000000000000000000006"
POOL = "0x3333333333333333333333333333333333333333"


def make_position(**overrides) -> Position:
    fields = dict(
        protocol="Avon",
        protocol_logo="",
        asset="USDM",
        asset_address=USDM,
        deposited_amount=10**21,
        deposited_usd=1000.0,
        current_apy=8.0,
        yield_earned=0.0,
        position_type=PositionType.LENDING,
        entry_timestamp=NOW - 90 * DAY,
        in_range=None,
    )
    fields.update(overrides)
    return Position(**fields)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        chain_id=4326,
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
    )


@pytest.fixture()
def vault_config() -> ProtocolConfig:
    return ProtocolConfig(
        id="avon",
        name="Avon",
        logo="🌿",
        template=ProtocolTemplate.ERC4626,
        chain="megaeth",
        contracts=ProtocolContracts(vault=VAULT),
        underlying_token=UnderlyingToken(
            address=USDM, symbol="USDM", decimals=18, price_usd=1.0
        ),
        apy_estimate=8.0,
        position_type=PositionType.LENDING,
    )


@pytest.fixture()
def univ3_config() -> ProtocolConfig:
    return ProtocolConfig(
        id="prism",
        name="Prism",
        logo="💎",
        template=ProtocolTemplate.UNIV3,
        chain="megaeth",
        contracts=ProtocolContracts(position_manager=POSITION_MANAGER, factory=FACTORY),
        apy_estimate=15.0,
        position_type=PositionType.LP,
    )


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig,
    vault_config: ProtocolConfig,
    univ3_config: ProtocolConfig,
) -> AppConfig:
    return AppConfig(
        wallets=(WalletConfig(label="main", address=WALLET),),
        chains={"megaeth": sample_chain_config},
        market=MarketConfig(
            tokens=(TokenInfo(address=USDM, symbol="USDM", decimals=18, price_usd=1.0),),
        ),
        protocols=(vault_config, univ3_config),
    )


@pytest.fixture()
def market() -> StaticMarketData:
    return StaticMarketData(
        tokens=(
            TokenInfo(address=USDM, symbol="USDM", decimals=18, price_usd=1.0),
            TokenInfo(address=WETH, symbol="WETH", decimals=18),
        ),
        pools=(PoolInfo(address=POOL, token0=WETH, token1=USDM, fee_apy=22.5),),
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def lending_position() -> Position:
    return make_position(deposited_usd=10000.0, current_apy=5.0, yield_earned=50.0)


@pytest.fixture()
def lp_position() -> Position:
    return make_position(
        protocol="Prism",
        asset="WETH/USDM 0.30%",
        asset_address=POOL,
        deposited_amount=123456789,
        deposited_usd=5000.0,
        current_apy=20.0,
        position_type=PositionType.LP,
        in_range=True,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    refresh_interval_minutes: 10
    wallets:
      - label: main
        address: "{WALLET}"
    chains:
      megaeth:
        chain_id: 4326
        rpc_endpoints: ["https://rpc.example.com"]
        rpc_timeout: 10
    reference_price:
      ttl_seconds: 30
      default_price: 3000
    market:
      tokens:
        - address: "{USDM}"
          symbol: USDM
          decimals: 18
          price_usd: 1.0
      pools:
        - address: "{POOL}"
          token0: "{WETH}"
          token1: "{USDM}"
          fee_apy: 22.5
    protocols:
      - id: avon
        name: Avon
        template: erc4626
        chain: megaeth
        contracts:
          vault: "{VAULT}"
        underlying_token:
          address: "{USDM}"
          symbol: USDM
          decimals: 18
          price_usd: 1.0
        apy_estimate: 8
      - id: prism
        name: Prism
        template: univ3
        chain: megaeth
        contracts:
          position_manager: "{POSITION_MANAGER}"
          factory: "{FACTORY}"
        apy_estimate: 15
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
