"""Yahoo Finance chart source (no key; may be throttled or blocked)."""
from __future__ import annotations

from ..models import AssetType, FetchErrorKind, PriceEntry
from .base import BROWSER_USER_AGENT, HttpSource, SourceError, optional_float, to_float


class YahooSource(HttpSource):
    name = "yahoo"
    asset_type = AssetType.STOCK
    default_base_url = "https://query1.finance.yahoo.com"

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        data = await self._get_json(
            f"{self.base_url}/v8/finance/chart/{symbol}",
            timeout,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )
        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "response missing 'chart'")
        if chart.get("error"):
            raise SourceError(FetchErrorKind.INVALID_SYMBOL, str(chart["error"])[:200])

        results = chart.get("result") or []
        if not results:
            raise SourceError(FetchErrorKind.INVALID_SYMBOL, f"no chart for '{symbol}'")
        meta = results[0].get("meta") if isinstance(results[0], dict) else None
        if not isinstance(meta, dict):
            raise SourceError(FetchErrorKind.MALFORMED_RESPONSE, "chart result missing 'meta'")

        price = to_float(meta.get("regularMarketPrice"), "regularMarketPrice")
        previous = optional_float(meta.get("previousClose"))
        if previous is None:
            previous = optional_float(meta.get("chartPreviousClose"))

        change = change_pct = None
        if previous:
            change = price - previous
            change_pct = change / previous * 100.0
        return self._entry(
            symbol,
            price,
            change_24h=change,
            change_24h_percent=change_pct,
            volume_24h=optional_float(meta.get("regularMarketVolume")),
        )
