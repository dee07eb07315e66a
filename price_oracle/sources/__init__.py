"""Upstream price sources, one module per provider."""
from .alpha_vantage import AlphaVantageSource
from .base import HttpSource
from .binance import BinanceSource
from .coinbase import CoinbaseSource
from .coingecko import CoinGeckoSource
from .finnhub import FinnhubSource
from .registry import available_sources, build_sources
from .yahoo import YahooSource

__all__ = [
    "HttpSource",
    "AlphaVantageSource",
    "BinanceSource",
    "CoinbaseSource",
    "CoinGeckoSource",
    "FinnhubSource",
    "YahooSource",
    "available_sources",
    "build_sources",
]
