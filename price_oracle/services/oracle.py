"""Oracle facade — the single entry point for reads, stats and forced updates.

Reads never trigger a fetch: they answer from the price cache, so query
latency does not depend on provider health. Only ``sweep`` /
``force_update`` go upstream, through the in-flight tracker and the
fallback chain of the symbol's asset type.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Mapping, Union

from ..config import AppConfig
from ..errors import ConfigError, PriceNotFound
from ..models import (
    AssetType,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    HealthStatus,
    OracleStats,
    PriceEntry,
    SweepSummary,
    SymbolFailure,
    utc_now,
)
from ..sources import build_sources
from .cache import PriceCache
from .chain import FallbackChain
from .inflight import InFlightTracker
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

Scope = Union[AssetType, str, None]


def parse_scope(scope: Scope) -> tuple[AssetType, ...]:
    """``None`` / ``"all"`` means every asset type."""
    if scope is None or (isinstance(scope, str) and scope.strip().lower() == "all"):
        return tuple(AssetType)
    return (AssetType.parse(scope),)


def scope_label(scope: Scope) -> str:
    types = parse_scope(scope)
    if len(types) == len(AssetType):
        return "all"
    return types[0].value


class PriceOracle:
    """Owns the price cache and keeps it fresh from the configured chains."""

    def __init__(
        self,
        symbols: Mapping[AssetType, Iterable[str]],
        chains: Mapping[AssetType, FallbackChain],
        max_concurrency: int = 8,
        stale_after: float = 90.0,
        cache: PriceCache | None = None,
    ) -> None:
        self._symbols: dict[AssetType, tuple[str, ...]] = {
            t: tuple(dict.fromkeys(t.normalize(s) for s in symbols.get(t, ())))
            for t in AssetType
        }
        for asset_type, configured in self._symbols.items():
            if configured and asset_type not in chains:
                raise ConfigError(
                    f"{asset_type.value} symbols are configured but no source chain exists"
                )
        if max_concurrency < 1:
            raise ConfigError("max_concurrency must be at least 1")

        self._chains = dict(chains)
        self._cache = cache or PriceCache()
        self._inflight: InFlightTracker[FetchOutcome] = InFlightTracker()
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._cancel = asyncio.Event()
        self._stale_after = stale_after
        self._started = time.monotonic()
        self._sweeps_completed = 0
        self._last_sweep: SweepSummary | None = None

    @classmethod
    def from_config(cls, config: AppConfig) -> PriceOracle:
        """Build sources and chains from configuration (fails fast on misconfig)."""
        retry = RetryPolicy(
            max_retries=config.general.max_retries,
            retry_delay=config.general.retry_delay,
        )
        chains: dict[AssetType, FallbackChain] = {}
        for asset_type in AssetType:
            if not config.asset(asset_type).symbols:
                continue
            sources = build_sources(config, asset_type)
            chains[asset_type] = FallbackChain(asset_type, sources, retry_policy=retry)

        oracle = cls(
            symbols={t: config.asset(t).symbols for t in AssetType},
            chains=chains,
            max_concurrency=config.general.max_concurrency,
            stale_after=config.scheduler.stale_after,
        )
        logger.info("Oracle initialized with %d symbols", oracle.total_symbols)
        return oracle

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def cache(self) -> PriceCache:
        return self._cache

    @property
    def total_symbols(self) -> int:
        return sum(len(s) for s in self._symbols.values())

    @property
    def cancel_event(self) -> asyncio.Event:
        return self._cancel

    @property
    def last_sweep(self) -> SweepSummary | None:
        return self._last_sweep

    def chain(self, asset_type: AssetType) -> FallbackChain | None:
        return self._chains.get(asset_type)

    # ------------------------------------------------------------------
    # Reads (cache only)
    # ------------------------------------------------------------------

    def get_price(self, asset_type: AssetType | str, symbol: str) -> PriceEntry:
        asset_type = AssetType.parse(asset_type)
        entry = self._cache.get(asset_type, symbol)
        if entry is None:
            raise PriceNotFound(asset_type, asset_type.normalize(symbol))
        return entry

    def get_all_prices(self, asset_type: AssetType | str) -> list[PriceEntry]:
        entries = self._cache.get_all(AssetType.parse(asset_type))
        return sorted(entries, key=lambda e: e.symbol)

    def list_symbols(self, scope: Scope = "all") -> dict[AssetType, tuple[str, ...]]:
        wanted = parse_scope(scope)
        return {t: (self._symbols[t] if t in wanted else ()) for t in AssetType}

    def health(self) -> HealthStatus:
        last_update = self._cache.last_updated()
        healthy = (
            last_update is not None
            and (utc_now() - last_update).total_seconds() <= self._stale_after
        )
        return HealthStatus(
            healthy=healthy, last_update=last_update, total_symbols=self.total_symbols
        )

    def get_stats(self) -> OracleStats:
        averages: dict[AssetType, float] = {}
        for asset_type in AssetType:
            prices = [e.price for e in self._cache.get_all(asset_type)]
            if prices:
                averages[asset_type] = sum(prices) / len(prices)

        sources = tuple(
            health for chain in self._chains.values() for health in chain.health()
        )
        return OracleStats(
            cached_counts={t: self._cache.count(t) for t in AssetType},
            configured_counts={t: len(self._symbols[t]) for t in AssetType},
            average_prices=averages,
            last_update=self._cache.last_updated(),
            uptime_seconds=time.monotonic() - self._started,
            sweeps_completed=self._sweeps_completed,
            last_sweep_at=self._last_sweep.finished_at if self._last_sweep else None,
            sources=sources,
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def refresh(self, asset_type: AssetType | str, symbol: str) -> FetchOutcome:
        """Refresh one symbol, joining a fetch already in flight for it."""
        asset_type = AssetType.parse(asset_type)
        symbol = asset_type.normalize(symbol)
        return await self._inflight.run(
            (asset_type, symbol), lambda: self._fetch_and_store(asset_type, symbol)
        )

    async def _fetch_and_store(self, asset_type: AssetType, symbol: str) -> FetchOutcome:
        chain = self._chains.get(asset_type)
        if chain is None:
            return FetchOutcome.failure(
                FetchError(
                    FetchErrorKind.ALL_SOURCES_EXHAUSTED,
                    f"{asset_type.value}-chain",
                    "no sources configured",
                )
            )

        async with self._semaphore:
            outcome = await chain.resolve(symbol, cancel=self._cancel)

        if outcome.entry is not None:
            self._cache.upsert(outcome.entry)
        return outcome

    async def sweep(self, scope: Scope = "all") -> SweepSummary:
        """Refresh every configured symbol in ``scope`` concurrently."""
        targets = [(t, s) for t in parse_scope(scope) for s in self._symbols[t]]
        started_at = utc_now()
        outcomes = await asyncio.gather(*(self.refresh(t, s) for t, s in targets))

        updated = 0
        failed: list[SymbolFailure] = []
        fallbacks: list[SymbolFailure] = []
        for (asset_type, symbol), outcome in zip(targets, outcomes):
            if outcome.ok:
                updated += 1
                fallbacks.extend(SymbolFailure(asset_type, symbol, e) for e in outcome.bypassed)
            else:
                failed.append(SymbolFailure(asset_type, symbol, outcome.error))

        summary = SweepSummary(
            updated_count=updated,
            failed=tuple(failed),
            fallbacks=tuple(fallbacks),
            started_at=started_at,
            finished_at=utc_now(),
        )
        self._sweeps_completed += 1
        self._last_sweep = summary
        logger.info(
            "Sweep (%s) finished: %d updated, %d failed",
            scope_label(scope), summary.updated_count, summary.failed_count,
        )
        return summary

    async def force_update(self, scope: Scope = "all") -> SweepSummary:
        """Immediate out-of-band sweep of ``crypto``, ``stock`` or ``all``.

        Returns once the targeted sweep is done; symbols already being
        fetched by the periodic sweep are joined, not fetched twice.
        """
        logger.info("Forced update requested for %s", scope_label(scope))
        return await self.sweep(scope)

    async def shutdown(self) -> None:
        """Stop starting new attempts and wait for in-flight fetches to settle."""
        self._cancel.set()
        await self._inflight.wait_idle()
