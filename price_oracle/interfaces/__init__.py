"""Protocol interfaces for the price oracle."""
from .source import PriceSource

__all__ = ["PriceSource"]
