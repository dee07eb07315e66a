"""Source registry — builds the ordered source list per asset type from config."""
from __future__ import annotations

import logging
from typing import Any, Callable

from ..config import AppConfig
from ..errors import ConfigError
from ..interfaces.source import PriceSource
from ..models import AssetType
from .alpha_vantage import AlphaVantageSource
from .binance import BinanceSource
from .coinbase import CoinbaseSource
from .coingecko import CoinGeckoSource
from .finnhub import FinnhubSource
from .yahoo import YahooSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[AppConfig], Any]

# Registry of source factories keyed by provider name.
_SOURCE_FACTORIES: dict[AssetType, dict[str, SourceFactory]] = {
    AssetType.CRYPTO: {
        "binance": lambda cfg: BinanceSource(
            cfg.provider("binance"),
            cfg.general.request_timeout,
            ticker_aliases=cfg.crypto.ticker_aliases,
        ),
        "coinbase": lambda cfg: CoinbaseSource(
            cfg.provider("coinbase"),
            cfg.general.request_timeout,
            ticker_aliases=cfg.crypto.ticker_aliases,
            vs_currency=cfg.crypto.vs_currency,
        ),
        "coingecko": lambda cfg: CoinGeckoSource(
            cfg.provider("coingecko"),
            cfg.general.request_timeout,
            vs_currency=cfg.crypto.vs_currency,
        ),
    },
    AssetType.STOCK: {
        "alpha_vantage": lambda cfg: AlphaVantageSource(
            cfg.provider("alpha_vantage"), cfg.general.request_timeout
        ),
        "finnhub": lambda cfg: FinnhubSource(
            cfg.provider("finnhub"), cfg.general.request_timeout
        ),
        "yahoo": lambda cfg: YahooSource(
            cfg.provider("yahoo"), cfg.general.request_timeout
        ),
    },
}


def available_sources(asset_type: AssetType) -> list[str]:
    return list(_SOURCE_FACTORIES[asset_type])


def build_sources(config: AppConfig, asset_type: AssetType) -> tuple[PriceSource, ...]:
    """Instantiate the configured sources for one asset type, in priority order.

    Sources that need an API key are skipped (with a warning) when none is
    configured. Raises ConfigError for unknown names, or when an asset type
    with configured symbols ends up with no usable source.
    """
    asset = config.asset(asset_type)
    factories = _SOURCE_FACTORIES[asset_type]

    sources: list[PriceSource] = []
    for name in asset.sources:
        factory = factories.get(name)
        if factory is None:
            raise ConfigError(
                f"Unknown {asset_type.value} source '{name}'. "
                f"Available: {available_sources(asset_type)}"
            )
        source = factory(config)
        if getattr(source, "requires_api_key", False) and not source.api_key:
            logger.warning("Skipping %s source '%s': no API key configured", asset_type.value, name)
            continue
        sources.append(source)

    if asset.symbols and not sources:
        raise ConfigError(
            f"No usable {asset_type.value} sources (configured: {list(asset.sources)})"
        )
    logger.info(
        "%s source chain: %s",
        asset_type.value,
        " -> ".join(s.name for s in sources) or "(none)",
    )
    return tuple(sources)
