"""Service modules"""
from .cache import PriceCache
from .chain import FallbackChain
from .inflight import InFlightTracker
from .oracle import PriceOracle, parse_scope
from .retry import RetryPolicy
from .scheduler import Scheduler, SchedulerState

__all__ = [
    "PriceCache",
    "FallbackChain",
    "InFlightTracker",
    "PriceOracle",
    "RetryPolicy",
    "Scheduler",
    "SchedulerState",
    "parse_scope",
]
