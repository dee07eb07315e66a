"""Price source protocol — one upstream provider per implementation."""
from typing import Protocol

from ..models import AssetType, FetchOutcome


class PriceSource(Protocol):
    """Abstract interface for fetching one instrument's price from a provider."""

    @property
    def name(self) -> str: ...

    @property
    def asset_type(self) -> AssetType: ...

    async def fetch(self, symbol: str, timeout: float | None = None) -> FetchOutcome: ...
