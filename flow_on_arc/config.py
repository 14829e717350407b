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

from .models import Token, TokenRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    chain_id: int = 5042002
    explorer_url: str = "https://testnet.arcscan.app"
    confirmation_timeout: int = 300


@dataclass(frozen=True)
class ContractsConfig:
    swap_router: str = ""
    lending_pool: str = ""
    faucet: str = ""


@dataclass(frozen=True)
class TokenConfig:
    address: str = ""
    decimals: int = 18
    icon: str = ""
    lendable: bool = True


@dataclass(frozen=True)
class MarketConfig:
    stable_symbol: str = "USDC"
    amm_pairs: tuple[str, ...] = ()
    lp_decimals: int = 18


@dataclass(frozen=True)
class PricingConfig:
    ltv: float = 0.8
    min_value_usd: float = 5.0
    default_slippage_percent: float = 1.0


@dataclass(frozen=True)
class FlowConfig:
    settle_delay_seconds: float = 1.5
    swap_deadline_minutes: int = 20


@dataclass(frozen=True)
class IndexerConfig:
    base_url: str = "https://dapp-backend-blue-bush-5535.fly.dev"
    timeout: int = 15


@dataclass(frozen=True)
class PollingConfig:
    stats_interval_seconds: int = 60
    history_interval_seconds: int = 30
    balances_interval_seconds: int = 30


@dataclass(frozen=True)
class WalletConfig:
    address: str = ""
    private_key: str = ""


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    contracts: ContractsConfig = field(default_factory=ContractsConfig)
    tokens: dict[str, TokenConfig] = field(default_factory=dict)
    market: MarketConfig = field(default_factory=MarketConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    flow: FlowConfig = field(default_factory=FlowConfig)
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    def token_registry(self) -> TokenRegistry:
        tokens = [
            Token(
                symbol=symbol,
                address=cfg.address,
                decimals=cfg.decimals,
                icon=cfg.icon,
                lendable=cfg.lendable,
            )
            for symbol, cfg in self.tokens.items()
        ]
        return TokenRegistry(tokens, self.market.stable_symbol)


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


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        chain_id=int(raw.get("chain_id", 5042002)),
        explorer_url=raw.get("explorer_url", ChainConfig.explorer_url).rstrip("/"),
        confirmation_timeout=int(raw.get("confirmation_timeout", 300)),
    )


def _build_contracts(raw: dict[str, Any]) -> ContractsConfig:
    return ContractsConfig(
        swap_router=raw.get("swap_router", ""),
        lending_pool=raw.get("lending_pool", ""),
        faucet=raw.get("faucet", ""),
    )


def _build_tokens(raw: dict[str, Any]) -> dict[str, TokenConfig]:
    tokens: dict[str, TokenConfig] = {}
    for symbol, cfg in raw.items():
        tokens[symbol.upper()] = TokenConfig(
            address=cfg.get("address", ""),
            decimals=int(cfg.get("decimals", 18)),
            icon=cfg.get("icon", ""),
            lendable=bool(cfg.get("lendable", True)),
        )
    return tokens


def _build_market(raw: dict[str, Any]) -> MarketConfig:
    return MarketConfig(
        stable_symbol=raw.get("stable_symbol", "USDC").upper(),
        amm_pairs=tuple(s.upper() for s in raw.get("amm_pairs", [])),
        lp_decimals=int(raw.get("lp_decimals", 18)),
    )


def _build_pricing(raw: dict[str, Any]) -> PricingConfig:
    return PricingConfig(
        ltv=float(raw.get("ltv", 0.8)),
        min_value_usd=float(raw.get("min_value_usd", 5.0)),
        default_slippage_percent=float(raw.get("default_slippage_percent", 1.0)),
    )


def _build_flow(raw: dict[str, Any]) -> FlowConfig:
    return FlowConfig(
        settle_delay_seconds=float(raw.get("settle_delay_seconds", 1.5)),
        swap_deadline_minutes=int(raw.get("swap_deadline_minutes", 20)),
    )


def _build_indexer(raw: dict[str, Any]) -> IndexerConfig:
    return IndexerConfig(
        base_url=raw.get("base_url", IndexerConfig.base_url).rstrip("/"),
        timeout=int(raw.get("timeout", 15)),
    )


def _build_polling(raw: dict[str, Any]) -> PollingConfig:
    return PollingConfig(
        stats_interval_seconds=int(raw.get("stats_interval_seconds", 60)),
        history_interval_seconds=int(raw.get("history_interval_seconds", 30)),
        balances_interval_seconds=int(raw.get("balances_interval_seconds", 30)),
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(
        address=raw.get("address", ""),
        private_key=raw.get("private_key", ""),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            bot_token=tg.get("bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


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

    cfg = AppConfig(
        chain=_build_chain(raw.get("chain", {})),
        contracts=_build_contracts(raw.get("contracts", {})),
        tokens=_build_tokens(raw.get("tokens", {})),
        market=_build_market(raw.get("market", {})),
        pricing=_build_pricing(raw.get("pricing", {})),
        flow=_build_flow(raw.get("flow", {})),
        indexer=_build_indexer(raw.get("indexer", {})),
        polling=_build_polling(raw.get("polling", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    for name in ("swap_router", "lending_pool", "faucet"):
        if not getattr(cfg.contracts, name):
            raise ValueError(f"Contract address '{name}' is not configured")

    if cfg.market.stable_symbol not in cfg.tokens:
        raise ValueError(
            f"Stable asset '{cfg.market.stable_symbol}' is not among configured tokens"
        )

    for symbol, token in cfg.tokens.items():
        if not token.address:
            raise ValueError(f"Token '{symbol}' has no address")

    for symbol in cfg.market.amm_pairs:
        if symbol not in cfg.tokens:
            raise ValueError(f"AMM pair references unknown token '{symbol}'")
        if symbol == cfg.market.stable_symbol:
            raise ValueError("AMM pairs are quoted against the stable asset itself")

    if not 0 < cfg.pricing.ltv <= 1:
        raise ValueError(f"LTV must be in (0, 1], got {cfg.pricing.ltv}")
