"""Crypto and stock price oracle."""
from .errors import ConfigError, OracleError, PriceNotFound
from .models import AssetType, FetchError, FetchErrorKind, PriceEntry
from .services import PriceOracle, Scheduler

__version__ = "0.1.0"

__all__ = [
    "AssetType",
    "ConfigError",
    "FetchError",
    "FetchErrorKind",
    "OracleError",
    "PriceEntry",
    "PriceNotFound",
    "PriceOracle",
    "Scheduler",
]
