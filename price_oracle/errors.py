"""Exceptions raised by the price oracle.

Fetch failures are values (:class:`~price_oracle.models.FetchError`), not
exceptions; these classes cover configuration and lookup errors only.
"""
from __future__ import annotations

from .models import AssetType


class OracleError(Exception):
    """Base class for price oracle errors."""


class ConfigError(OracleError, ValueError):
    """Invalid or inconsistent configuration detected at startup."""


class PriceNotFound(OracleError, LookupError):
    """No cached price exists for the requested instrument."""

    def __init__(self, asset_type: AssetType, symbol: str) -> None:
        self.asset_type = asset_type
        self.symbol = symbol
        super().__init__(f"Price not found for {asset_type.value} symbol: {symbol}")
