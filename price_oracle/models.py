"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class AssetType(str, Enum):
    """Top-level instrument category."""

    CRYPTO = "crypto"
    STOCK = "stock"

    @classmethod
    def parse(cls, value: str | AssetType) -> AssetType:
        """Parse ``crypto`` / ``stock`` (case-insensitive)."""
        if isinstance(value, AssetType):
            return value
        text = str(value).strip().lower()
        if text in ("stocks", "equity"):
            text = "stock"
        try:
            return cls(text)
        except ValueError:
            raise ValueError(
                f"Invalid asset type '{value}'. Use 'crypto' or 'stock'"
            ) from None

    def normalize(self, symbol: str) -> str:
        """Crypto ids are lower-case, stock tickers upper-case."""
        symbol = symbol.strip()
        if self is AssetType.CRYPTO:
            return symbol.lower()
        return symbol.upper()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PriceEntry:
    """Latest known price for one instrument, as reported by one source."""

    asset_type: AssetType
    symbol: str
    price: float
    fetched_at: datetime
    source: str
    change_24h: float | None = None
    change_24h_percent: float | None = None
    volume_24h: float | None = None

    @property
    def key(self) -> tuple[AssetType, str]:
        return (self.asset_type, self.symbol)


class FetchErrorKind(str, Enum):
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    INVALID_SYMBOL = "invalid_symbol"
    MALFORMED_RESPONSE = "malformed_response"
    TIMEOUT = "timeout"
    ALL_SOURCES_EXHAUSTED = "all_sources_exhausted"
    # attempt not started because the oracle is shutting down
    CANCELLED = "cancelled"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {FetchErrorKind.NETWORK, FetchErrorKind.RATE_LIMITED, FetchErrorKind.TIMEOUT}
)


@dataclass(frozen=True)
class FetchError:
    """Typed failure of a fetch, tagged with the source that produced it.

    For ``ALL_SOURCES_EXHAUSTED`` the ``causes`` tuple holds the last error
    of every source in chain order.
    """

    kind: FetchErrorKind
    source: str
    message: str = ""
    causes: tuple[FetchError, ...] = ()

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def summary(self) -> str:
        if self.causes:
            return "; ".join(cause.summary() for cause in self.causes)
        text = f"{self.source}: {self.kind.value}"
        if self.message:
            text += f" ({self.message})"
        return text

    def __str__(self) -> str:
        return self.summary()


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one fetch: exactly one of ``entry`` / ``error`` is set.

    ``bypassed`` lists the errors of sources that were given up on before
    the one that produced ``entry``; it is diagnostic only.
    """

    entry: PriceEntry | None = None
    error: FetchError | None = None
    bypassed: tuple[FetchError, ...] = ()

    def __post_init__(self) -> None:
        if (self.entry is None) == (self.error is None):
            raise ValueError("FetchOutcome needs exactly one of entry or error")

    @classmethod
    def success(
        cls, entry: PriceEntry, bypassed: tuple[FetchError, ...] = ()
    ) -> FetchOutcome:
        return cls(entry=entry, bypassed=bypassed)

    @classmethod
    def failure(cls, error: FetchError) -> FetchOutcome:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.entry is not None


@dataclass(frozen=True)
class SourceHealth:
    """Per-source counters kept by a fallback chain."""

    source: str
    successes: int = 0
    failures: int = 0
    last_error: str | None = None
    last_success_at: datetime | None = None


@dataclass(frozen=True)
class SymbolFailure:
    asset_type: AssetType
    symbol: str
    error: FetchError


@dataclass(frozen=True)
class SweepSummary:
    """Outcome of one sweep over some or all configured symbols.

    ``updated_count`` counts symbols fetched successfully. A result the cache
    drops as older than its entry still counts: that symbol already holds a
    newer price.
    """

    updated_count: int = 0
    failed: tuple[SymbolFailure, ...] = ()
    # symbols updated only after earlier sources failed, one item per bypassed error
    fallbacks: tuple[SymbolFailure, ...] = ()
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@dataclass(frozen=True)
class HealthStatus:
    healthy: bool
    last_update: datetime | None
    total_symbols: int


@dataclass(frozen=True)
class OracleStats:
    """Read-through projection of the price cache."""

    cached_counts: dict[AssetType, int]
    configured_counts: dict[AssetType, int]
    average_prices: dict[AssetType, float]
    last_update: datetime | None
    uptime_seconds: float
    sweeps_completed: int = 0
    last_sweep_at: datetime | None = None
    sources: tuple[SourceHealth, ...] = ()
