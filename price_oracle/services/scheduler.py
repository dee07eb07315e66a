"""Background refresh scheduler — keeps the price cache warm."""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..models import SweepSummary
from .oracle import PriceOracle, Scope

logger = logging.getLogger(__name__)

SweepCallback = Callable[[SweepSummary], Optional[Awaitable[None]]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"
    STOPPED = "stopped"


class Scheduler:
    """Launches a full sweep every ``interval`` seconds until stopped.

    A tick never waits for the previous sweep: if a sweep overruns the
    interval the next one starts anyway, and the oracle's in-flight
    tracker turns the overlap into joins instead of duplicate fetches.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        interval: float = 30.0,
        on_sweep: SweepCallback | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Scheduler interval must be greater than 0")
        self._oracle = oracle
        self.interval = interval
        self._on_sweep = on_sweep
        self._stop = asyncio.Event()
        self._sweeps: set[asyncio.Task[None]] = set()
        self._runner: asyncio.Task[None] | None = None

    @property
    def state(self) -> SchedulerState:
        if self._stop.is_set():
            return SchedulerState.STOPPED
        if self._sweeps:
            return SchedulerState.REFRESHING
        return SchedulerState.IDLE

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Run the loop as a background task."""
        if self._runner is None or self._runner.done():
            self._runner = asyncio.create_task(self.run_forever(), name="price-scheduler")
        return self._runner

    async def stop(self) -> None:
        """Stop ticking, cancel pending retry attempts, wait for sweeps to settle."""
        logger.info("Stopping scheduler")
        self._stop.set()
        await self._oracle.shutdown()
        if self._runner is not None:
            await self._runner
        await self._drain()

    async def run_forever(self) -> None:
        logger.info("Starting scheduler (sweeping every %g seconds)", self.interval)
        while not self._stop.is_set():
            self._launch_sweep("all")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue
        await self._drain()
        logger.info("Scheduler stopped")

    async def run_once(self, scope: Scope = "all") -> SweepSummary:
        """One sweep in the foreground."""
        return await self._sweep(scope)

    async def force(self, scope: Scope = "all") -> SweepSummary:
        """Out-of-band sweep of ``scope``, independent of the periodic timer."""
        return await self._oracle.force_update(scope)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _launch_sweep(self, scope: Scope) -> None:
        task = asyncio.create_task(self._guarded_sweep(scope))
        self._sweeps.add(task)
        task.add_done_callback(self._sweeps.discard)

    async def _guarded_sweep(self, scope: Scope) -> None:
        try:
            await self._sweep(scope)
        except Exception as e:
            logger.error("Error in refresh sweep: %s", e, exc_info=True)

    async def _sweep(self, scope: Scope) -> SweepSummary:
        summary = await self._oracle.sweep(scope)
        for failure in summary.failed:
            logger.warning(
                "No update for %s %s: %s",
                failure.asset_type.value, failure.symbol, failure.error,
            )
        if self._on_sweep is not None:
            result = self._on_sweep(summary)
            if asyncio.iscoroutine(result):
                await result
        return summary

    async def _drain(self) -> None:
        if self._sweeps:
            await asyncio.gather(*self._sweeps, return_exceptions=True)
