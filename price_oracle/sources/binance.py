"""Binance spot ticker source (public, no key required)."""
from __future__ import annotations

import logging

from ..config import ProviderConfig
from ..models import AssetType, FetchErrorKind, PriceEntry
from .base import HttpSource, SourceError, optional_float, to_float

logger = logging.getLogger(__name__)


class BinanceSource(HttpSource):
    """24h ticker for ``{TICKER}USDT`` pairs."""

    name = "binance"
    asset_type = AssetType.CRYPTO
    default_base_url = "https://api.binance.com"
    # Binance answers 400 {"code": -1121, "msg": "Invalid symbol."}
    invalid_symbol_statuses = (400, 404)

    def __init__(
        self,
        config: ProviderConfig,
        default_timeout: float = 30.0,
        ticker_aliases: dict[str, str] | None = None,
        quote_asset: str = "USDT",
    ) -> None:
        super().__init__(config, default_timeout)
        self.ticker_aliases = dict(ticker_aliases or {})
        self.quote_asset = quote_asset

    def pair_for(self, symbol: str) -> str:
        ticker = self.ticker_aliases.get(symbol, symbol).upper()
        if "-" in ticker:
            logger.warning(
                "Symbol '%s' contains hyphens and may not work with Binance", symbol
            )
        return f"{ticker}{self.quote_asset}"

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        pair = self.pair_for(symbol)
        data = await self._get_json(
            f"{self.base_url}/api/v3/ticker/24hr",
            timeout,
            params={"symbol": pair},
        )
        if not isinstance(data, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "expected an object")
        if "code" in data and "lastPrice" not in data:
            raise SourceError(
                FetchErrorKind.INVALID_SYMBOL, str(data.get("msg", data["code"]))
            )

        return self._entry(
            symbol,
            to_float(data.get("lastPrice"), "lastPrice"),
            change_24h=optional_float(data.get("priceChange")),
            change_24h_percent=optional_float(data.get("priceChangePercent")),
            volume_24h=optional_float(data.get("volume")),
        )
