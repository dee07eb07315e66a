"""Finnhub quote source (API key required)."""
from __future__ import annotations

from ..models import AssetType, FetchErrorKind, PriceEntry
from .base import HttpSource, SourceError, optional_float, to_float


class FinnhubSource(HttpSource):
    name = "finnhub"
    asset_type = AssetType.STOCK
    default_base_url = "https://finnhub.io"
    requires_api_key = True

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        data = await self._get_json(
            f"{self.base_url}/api/v1/quote",
            timeout,
            params={"symbol": symbol, "token": self.api_key},
        )
        if not isinstance(data, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "expected an object")
        if "error" in data:
            raise SourceError(FetchErrorKind.NETWORK, str(data["error"])[:200])

        # Unknown symbols come back as an all-zero quote.
        if not data.get("c") and not data.get("t"):
            raise SourceError(FetchErrorKind.INVALID_SYMBOL, f"empty quote for '{symbol}'")

        return self._entry(
            symbol,
            to_float(data.get("c"), "c"),
            change_24h=optional_float(data.get("d")),
            change_24h_percent=optional_float(data.get("dp")),
        )
