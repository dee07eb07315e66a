"""Coinbase v2 spot price source."""
from __future__ import annotations

from ..config import ProviderConfig
from ..models import AssetType, FetchErrorKind, PriceEntry
from .base import HttpSource, SourceError, to_float


class CoinbaseSource(HttpSource):
    """Spot price for ``{TICKER}-USD`` from the public Coinbase API."""

    name = "coinbase"
    asset_type = AssetType.CRYPTO
    default_base_url = "https://api.coinbase.com"
    invalid_symbol_statuses = (400, 404)

    def __init__(
        self,
        config: ProviderConfig,
        default_timeout: float = 30.0,
        ticker_aliases: dict[str, str] | None = None,
        vs_currency: str = "usd",
    ) -> None:
        super().__init__(config, default_timeout)
        self.ticker_aliases = dict(ticker_aliases or {})
        self.vs_currency = vs_currency.upper()

    def pair_for(self, symbol: str) -> str:
        ticker = self.ticker_aliases.get(symbol, symbol).upper()
        if "-" in ticker:
            return ticker
        return f"{ticker}-{self.vs_currency}"

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        pair = self.pair_for(symbol)
        data = await self._get_json(
            f"{self.base_url}/v2/prices/{pair}/spot", timeout
        )
        spot = data.get("data") if isinstance(data, dict) else None
        if not isinstance(spot, dict):
            raise SourceError(
                FetchErrorKind.MALFORMED_RESPONSE, "response missing 'data'"
            )
        return self._entry(symbol, to_float(spot.get("amount"), "data.amount"))
