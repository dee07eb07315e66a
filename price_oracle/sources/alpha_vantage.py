"""Alpha Vantage GLOBAL_QUOTE source (API key required)."""
from __future__ import annotations

from ..models import AssetType, FetchErrorKind, PriceEntry
from .base import HttpSource, SourceError, optional_float, to_float


class AlphaVantageSource(HttpSource):
    name = "alpha_vantage"
    asset_type = AssetType.STOCK
    default_base_url = "https://www.alphavantage.co"
    requires_api_key = True

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        data = await self._get_json(
            f"{self.base_url}/query",
            timeout,
            params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
        )
        if not isinstance(data, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "expected an object")

        # Throttled requests still return 200, with a "Note"/"Information" body.
        for key in ("Note", "Information"):
            if key in data and "Global Quote" not in data:
                raise SourceError(FetchErrorKind.RATE_LIMITED, str(data[key])[:200])
        if "Error Message" in data:
            raise SourceError(FetchErrorKind.INVALID_SYMBOL, str(data["Error Message"])[:200])

        quote = data.get("Global Quote")
        if quote is None:
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "missing 'Global Quote'")
        if not quote:
            raise SourceError(FetchErrorKind.INVALID_SYMBOL, f"no quote for '{symbol}'")
        if not isinstance(quote, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "'Global Quote' is not an object")

        return self._entry(
            symbol,
            to_float(quote.get("05. price"), "05. price"),
            change_24h=optional_float(quote.get("09. change")),
            change_24h_percent=optional_float(quote.get("10. change percent")),
            volume_24h=optional_float(quote.get("06. volume")),
        )
