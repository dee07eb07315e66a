"""CoinGecko simple-price source."""
from __future__ import annotations

from ..config import ProviderConfig
from ..models import AssetType, FetchErrorKind, PriceEntry
from .base import BROWSER_USER_AGENT, HttpSource, SourceError, optional_float, to_float


class CoinGeckoSource(HttpSource):
    """Price by CoinGecko coin id (``bitcoin``, ``usd-coin``, ...)."""

    name = "coingecko"
    asset_type = AssetType.CRYPTO
    default_base_url = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        config: ProviderConfig,
        default_timeout: float = 30.0,
        vs_currency: str = "usd",
    ) -> None:
        super().__init__(config, default_timeout)
        self.vs_currency = vs_currency.lower()

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        headers = {"User-Agent": BROWSER_USER_AGENT, "Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key

        data = await self._get_json(
            f"{self.base_url}/simple/price",
            timeout,
            params={
                "ids": symbol,
                "vs_currencies": self.vs_currency,
                "include_24hr_change": "true",
            },
            headers=headers,
        )
        if not isinstance(data, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "expected an object")
        # Unknown ids are silently omitted from the response.
        quote = data.get(symbol)
        if quote is None:
            raise SourceError(FetchErrorKind.INVALID_SYMBOL, f"unknown coin id '{symbol}'")
        if not isinstance(quote, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "quote is not an object")

        price = to_float(quote.get(self.vs_currency), self.vs_currency)
        change_pct = optional_float(quote.get(f"{self.vs_currency}_24h_change"))
        change = price * change_pct / 100.0 if change_pct is not None else None
        return self._entry(
            symbol, price, change_24h=change, change_24h_percent=change_pct
        )
