"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .models import AssetType

logger = logging.getLogger(__name__)

# CoinGecko id -> exchange ticker, for sources that quote by ticker.
DEFAULT_TICKER_ALIASES: dict[str, str] = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "tether": "USDT",
    "binancecoin": "BNB",
    "solana": "SOL",
    "usd-coin": "USDC",
    "staked-ether": "STETH",
    "ripple": "XRP",
    "dogecoin": "DOGE",
    "toncoin": "TON",
    "cardano": "ADA",
    "avalanche-2": "AVAX",
    "shiba-inu": "SHIB",
    "chainlink": "LINK",
    "bitcoin-cash": "BCH",
    "polkadot": "DOT",
    "near": "NEAR",
    "polygon": "MATIC",
    "litecoin": "LTC",
    "internet-computer": "ICP",
    "dai": "DAI",
    "uniswap": "UNI",
    "ethereum-classic": "ETC",
    "aptos": "APT",
    "monero": "XMR",
    "stellar": "XLM",
    "filecoin": "FIL",
    "arbitrum": "ARB",
    "cosmos": "ATOM",
    "hedera-hashgraph": "HBAR",
    "vechain": "VET",
    "algorand": "ALGO",
    "optimism": "OP",
    "aave": "AAVE",
    "tezos": "XTZ",
    "maker": "MKR",
    "sui": "SUI",
}

DEFAULT_CRYPTO_SOURCES = ("binance", "coinbase", "coingecko")
DEFAULT_STOCK_SOURCES = ("finnhub", "alpha_vantage", "yahoo")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneralConfig:
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    max_concurrency: int = 8


@dataclass(frozen=True)
class SchedulerConfig:
    interval_seconds: float = 30.0
    stale_after_seconds: float | None = None

    @property
    def stale_after(self) -> float:
        if self.stale_after_seconds is not None:
            return self.stale_after_seconds
        return self.interval_seconds * 3


@dataclass(frozen=True)
class AssetConfig:
    symbols: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class CryptoConfig(AssetConfig):
    sources: tuple[str, ...] = DEFAULT_CRYPTO_SOURCES
    vs_currency: str = "usd"
    ticker_aliases: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TICKER_ALIASES)
    )


@dataclass(frozen=True)
class StockConfig(AssetConfig):
    sources: tuple[str, ...] = DEFAULT_STOCK_SOURCES


@dataclass(frozen=True)
class ProviderConfig:
    api_key: str = ""
    base_url: str = ""
    timeout: float | None = None


@dataclass(frozen=True)
class AppConfig:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    crypto: CryptoConfig = field(default_factory=CryptoConfig)
    stocks: StockConfig = field(default_factory=StockConfig)
    providers: dict[str, ProviderConfig] = field(default_factory=dict)

    def asset(self, asset_type: AssetType) -> AssetConfig:
        if asset_type is AssetType.CRYPTO:
            return self.crypto
        return self.stocks

    def provider(self, name: str) -> ProviderConfig:
        return self.providers.get(name, ProviderConfig())


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


def _normalize_symbols(raw: list[Any], asset_type: AssetType) -> tuple[str, ...]:
    """Normalize case and drop blanks and duplicates, keeping order."""
    seen: dict[str, None] = {}
    for item in raw or []:
        symbol = asset_type.normalize(str(item))
        if symbol:
            seen.setdefault(symbol, None)
    return tuple(seen)


def _build_general(raw: dict[str, Any]) -> GeneralConfig:
    return GeneralConfig(
        request_timeout=float(raw.get("request_timeout", 30.0)),
        max_retries=int(raw.get("max_retries", 3)),
        retry_delay=float(raw.get("retry_delay", 1.0)),
        max_concurrency=int(raw.get("max_concurrency", 8)),
    )


def _build_scheduler(raw: dict[str, Any]) -> SchedulerConfig:
    stale = raw.get("stale_after_seconds")
    return SchedulerConfig(
        interval_seconds=float(raw.get("interval_seconds", 30.0)),
        stale_after_seconds=float(stale) if stale is not None else None,
    )


def _build_crypto(raw: dict[str, Any]) -> CryptoConfig:
    aliases = dict(DEFAULT_TICKER_ALIASES)
    for coin_id, ticker in (raw.get("ticker_aliases") or {}).items():
        aliases[str(coin_id).strip().lower()] = str(ticker).strip().upper()
    return CryptoConfig(
        symbols=_normalize_symbols(raw.get("symbols", []), AssetType.CRYPTO),
        sources=tuple(raw.get("sources", DEFAULT_CRYPTO_SOURCES)),
        vs_currency=str(raw.get("vs_currency", "usd")).lower(),
        ticker_aliases=aliases,
    )


def _build_stocks(raw: dict[str, Any]) -> StockConfig:
    return StockConfig(
        symbols=_normalize_symbols(raw.get("symbols", []), AssetType.STOCK),
        sources=tuple(raw.get("sources", DEFAULT_STOCK_SOURCES)),
    )


def _build_providers(raw: dict[str, Any]) -> dict[str, ProviderConfig]:
    providers: dict[str, ProviderConfig] = {}
    for name, cfg in raw.items():
        cfg = cfg or {}
        timeout = cfg.get("timeout")
        providers[name] = ProviderConfig(
            api_key=cfg.get("api_key", "") or "",
            base_url=cfg.get("base_url", "") or "",
            timeout=float(timeout) if timeout not in (None, "") else None,
        )
    return providers


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
        general=_build_general(raw.get("general") or {}),
        scheduler=_build_scheduler(raw.get("scheduler") or {}),
        crypto=_build_crypto(raw.get("crypto") or {}),
        stocks=_build_stocks(raw.get("stocks") or {}),
        providers=_build_providers(raw.get("providers") or {}),
    )

    validate(cfg)
    logger.info(
        "Configuration loaded from %s (%d crypto, %d stock symbols)",
        config_path,
        len(cfg.crypto.symbols),
        len(cfg.stocks.symbols),
    )
    return cfg


def validate(cfg: AppConfig) -> None:
    """Raise ConfigError on invalid configuration."""
    if not cfg.crypto.symbols and not cfg.stocks.symbols:
        raise ConfigError("No symbols configured for crypto or stocks")

    if cfg.general.request_timeout <= 0:
        raise ConfigError("Request timeout must be greater than 0")
    if cfg.general.max_retries < 1:
        raise ConfigError("max_retries must be at least 1")
    if cfg.general.retry_delay < 0:
        raise ConfigError("retry_delay must not be negative")
    if cfg.general.max_concurrency < 1:
        raise ConfigError("max_concurrency must be at least 1")
    if cfg.scheduler.interval_seconds <= 0:
        raise ConfigError("Scheduler interval must be greater than 0")

    for asset_type in AssetType:
        asset = cfg.asset(asset_type)
        if asset.symbols and not asset.sources:
            raise ConfigError(
                f"{asset_type.value} symbols are configured but no sources are listed"
            )
