"""Fallback chain: ordered sources per asset type, each behind the retry policy.

A chain tries its sources in priority order. Each source gets a fresh retry
budget; when one is exhausted the next is tried. If every source fails the
chain reports ``ALL_SOURCES_EXHAUSTED`` with every source's last error.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Sequence

from ..errors import ConfigError
from ..interfaces.source import PriceSource
from ..models import (
    AssetType,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    SourceHealth,
    utc_now,
)
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class FallbackChain:
    """Ordered, immutable sequence of sources for one asset type."""

    def __init__(
        self,
        asset_type: AssetType,
        sources: Sequence[PriceSource],
        retry_policy: RetryPolicy | None = None,
        timeout: float | None = None,
    ) -> None:
        if not sources:
            raise ConfigError(f"Empty source chain for {asset_type.value}")
        self.asset_type = asset_type
        self._sources = tuple(sources)
        self._retry = retry_policy or RetryPolicy()
        self._timeout = timeout
        self._health: dict[str, SourceHealth] = {
            s.name: SourceHealth(source=s.name) for s in self._sources
        }

    @property
    def sources(self) -> tuple[PriceSource, ...]:
        return self._sources

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self._sources)

    async def resolve(
        self, symbol: str, cancel: asyncio.Event | None = None
    ) -> FetchOutcome:
        """Fetch ``symbol`` from the first source that succeeds."""
        symbol = self.asset_type.normalize(symbol)
        errors: list[FetchError] = []

        for source in self._sources:
            if cancel is not None and cancel.is_set():
                errors.append(
                    FetchError(FetchErrorKind.CANCELLED, source.name, "shutdown requested")
                )
                break

            outcome = await self._retry.call(
                source, symbol, timeout=self._timeout, cancel=cancel
            )
            if outcome.ok:
                self._record_success(source.name)
                if errors:
                    logger.info(
                        "Fetched %s %s from %s after %d failed source(s)",
                        self.asset_type.value, symbol, source.name, len(errors),
                    )
                    return FetchOutcome.success(outcome.entry, bypassed=tuple(errors))
                return outcome

            self._record_failure(source.name, outcome.error)
            errors.append(outcome.error)
            if outcome.error.kind is FetchErrorKind.CANCELLED:
                break

        exhausted = FetchError(
            kind=FetchErrorKind.ALL_SOURCES_EXHAUSTED,
            source=f"{self.asset_type.value}-chain",
            message=f"all sources failed for {symbol}",
            causes=tuple(errors),
        )
        logger.error(
            "All %s sources failed for %s: %s", self.asset_type.value, symbol, exhausted
        )
        return FetchOutcome.failure(exhausted)

    # ------------------------------------------------------------------
    # Health bookkeeping
    # ------------------------------------------------------------------

    def _record_success(self, name: str) -> None:
        current = self._health[name]
        self._health[name] = replace(
            current, successes=current.successes + 1, last_success_at=utc_now()
        )

    def _record_failure(self, name: str, error: FetchError) -> None:
        current = self._health[name]
        self._health[name] = replace(
            current, failures=current.failures + 1, last_error=error.summary()[:500]
        )

    def health(self) -> tuple[SourceHealth, ...]:
        """Health counters for every source, in chain order."""
        return tuple(self._health[s.name] for s in self._sources)
