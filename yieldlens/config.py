"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import (
    PoolInfo,
    PositionType,
    ProtocolConfig,
    ProtocolContracts,
    ProtocolTemplate,
    TokenInfo,
    UnderlyingToken,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WalletConfig:
    label: str = ""
    address: str = ""


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 0
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class ReferencePriceConfig:
    url: str = "https://coins.llama.fi/prices/current/coingecko:ethereum"
    coin_key: str = "coingecko:ethereum"
    ttl_seconds: float = 60.0
    timeout_seconds: float = 4.0
    default_price: float = 2500.0


@dataclass(frozen=True)
class MarketConfig:
    tokens: tuple[TokenInfo, ...] = ()
    pools: tuple[PoolInfo, ...] = ()


@dataclass(frozen=True)
class AppConfig:
    wallets: tuple[WalletConfig, ...] = ()
    chains: dict[str, ChainConfig] = field(default_factory=dict)
    reference_price: ReferencePriceConfig = field(default_factory=ReferencePriceConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    protocols: tuple[ProtocolConfig, ...] = ()
    refresh_interval_minutes: int = 5


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_wallets(raw: list[dict[str, Any]]) -> tuple[WalletConfig, ...]:
    return tuple(
        WalletConfig(label=w.get("label", ""), address=w.get("address", ""))
        for w in raw
    )


def _build_chains(raw: dict[str, Any]) -> dict[str, ChainConfig]:
    chains: dict[str, ChainConfig] = {}
    for name, cfg in raw.items():
        chains[name] = ChainConfig(
            chain_id=int(cfg.get("chain_id", 0)),
            rpc_endpoints=tuple(cfg.get("rpc_endpoints", [])),
            rpc_timeout=int(cfg.get("rpc_timeout", 30)),
        )
    return chains


def _build_reference_price(raw: dict[str, Any]) -> ReferencePriceConfig:
    defaults = ReferencePriceConfig()
    return ReferencePriceConfig(
        url=raw.get("url", defaults.url),
        coin_key=raw.get("coin_key", defaults.coin_key),
        ttl_seconds=float(raw.get("ttl_seconds", defaults.ttl_seconds)),
        timeout_seconds=float(raw.get("timeout_seconds", defaults.timeout_seconds)),
        default_price=float(raw.get("default_price", defaults.default_price)),
    )


def _build_market(raw: dict[str, Any]) -> MarketConfig:
    tokens = tuple(
        TokenInfo(
            address=t.get("address", ""),
            symbol=t.get("symbol", ""),
            decimals=int(t.get("decimals", 18)),
            price_usd=float(t.get("price_usd", 0.0)),
            logo=t.get("logo", ""),
        )
        for t in raw.get("tokens", [])
    )
    pools = tuple(
        PoolInfo(
            address=p.get("address", ""),
            token0=p.get("token0", ""),
            token1=p.get("token1", ""),
            fee_apy=float(p["fee_apy"]) if p.get("fee_apy") is not None else None,
        )
        for p in raw.get("pools", [])
    )
    return MarketConfig(tokens=tokens, pools=pools)


def build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    """Build one ProtocolConfig from its YAML/dict form."""
    contracts = raw.get("contracts", {})
    underlying_raw = raw.get("underlying_token")
    underlying = None
    if underlying_raw:
        underlying = UnderlyingToken(
            address=underlying_raw.get("address", ""),
            symbol=underlying_raw.get("symbol", ""),
            decimals=int(underlying_raw.get("decimals", 18)),
            price_usd=float(underlying_raw.get("price_usd", 0.0)),
        )
    template = ProtocolTemplate(raw.get("template", ""))
    default_type = "lp" if template is ProtocolTemplate.UNIV3 else "lending"
    return ProtocolConfig(
        id=str(raw.get("id", "")),
        name=raw.get("name", ""),
        logo=raw.get("logo", ""),
        template=template,
        enabled=bool(raw.get("enabled", True)),
        chain=raw.get("chain", ""),
        contracts=ProtocolContracts(
            vault=contracts.get("vault", ""),
            position_manager=contracts.get("position_manager", ""),
            factory=contracts.get("factory", ""),
        ),
        underlying_token=underlying,
        apy_estimate=float(raw.get("apy_estimate", 0.0)),
        position_type=PositionType(raw.get("position_type", default_type)),
        added_at=int(raw.get("added_at", 0)),
    )


def _build_protocols(raw: list[dict[str, Any]]) -> tuple[ProtocolConfig, ...]:
    return tuple(build_protocol(p) for p in raw)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    try:
        cfg = AppConfig(
            wallets=_build_wallets(raw.get("wallets", [])),
            chains=_build_chains(raw.get("chains", {})),
            reference_price=_build_reference_price(raw.get("reference_price", {})),
            market=_build_market(raw.get("market", {})),
            protocols=_build_protocols(raw.get("protocols", [])),
            refresh_interval_minutes=int(raw.get("refresh_interval_minutes", 5)),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed configuration in {config_path}: {e}") from e

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def validate_protocol(protocol: ProtocolConfig, chains: dict[str, ChainConfig]) -> None:
    """Raise ValueError when a protocol entry cannot be read."""
    label = protocol.id or protocol.name
    if not protocol.id:
        raise ValueError(f"Protocol '{protocol.name}' has no id")
    if protocol.chain not in chains:
        raise ValueError(
            f"Protocol '{label}' references unknown chain '{protocol.chain}'"
        )
    if protocol.template is ProtocolTemplate.ERC4626:
        if not protocol.contracts.vault:
            raise ValueError(f"Vault protocol '{label}' has no vault address")
        if protocol.underlying_token is None:
            raise ValueError(f"Vault protocol '{label}' has no underlying_token")
        if protocol.position_type is PositionType.LP:
            raise ValueError(
                f"Vault protocol '{label}' cannot be classified as an lp position"
            )
    elif protocol.template is ProtocolTemplate.UNIV3:
        if not (protocol.contracts.position_manager and protocol.contracts.factory):
            raise ValueError(
                f"Concentrated-liquidity protocol '{label}' needs position_manager and factory"
            )
        if protocol.position_type is not PositionType.LP:
            raise ValueError(
                f"Concentrated-liquidity protocol '{label}' must be classified as lp"
            )


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    for wallet in cfg.wallets:
        if not wallet.address:
            raise ValueError(f"Wallet '{wallet.label}' has no address")

    seen: set[str] = set()
    for protocol in cfg.protocols:
        validate_protocol(protocol, cfg.chains)
        if protocol.id in seen:
            raise ValueError(f"Duplicate protocol id '{protocol.id}'")
        seen.add(protocol.id)
