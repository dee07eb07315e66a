"""Integration tests for the refresh scheduler."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import ScriptedSource
from price_oracle.models import AssetType, FetchErrorKind, SweepSummary
from price_oracle.services import (
    FallbackChain,
    PriceOracle,
    RetryPolicy,
    Scheduler,
    SchedulerState,
)


@pytest.fixture()
def oracle() -> PriceOracle:
    chain = FallbackChain(
        AssetType.CRYPTO,
        [ScriptedSource("binance", [43250.50])],
        RetryPolicy(max_retries=1, retry_delay=0),
    )
    return PriceOracle(
        symbols={AssetType.CRYPTO: ("bitcoin",)},
        chains={AssetType.CRYPTO: chain},
    )


class TestScheduler:
    def test_rejects_non_positive_interval(self, oracle: PriceOracle) -> None:
        with pytest.raises(ValueError, match="greater than 0"):
            Scheduler(oracle, interval=0)

    @pytest.mark.asyncio
    async def test_run_once_populates_cache(self, oracle: PriceOracle) -> None:
        seen: list[SweepSummary] = []
        scheduler = Scheduler(oracle, interval=30, on_sweep=seen.append)

        summary = await scheduler.run_once()

        assert summary.updated_count == 1
        assert seen == [summary]
        assert oracle.get_price("crypto", "bitcoin").price == 43250.50

    @pytest.mark.asyncio
    async def test_async_callback_awaited(self, oracle: PriceOracle) -> None:
        callback = AsyncMock()
        scheduler = Scheduler(oracle, interval=30, on_sweep=callback)
        summary = await scheduler.run_once()
        callback.assert_awaited_once_with(summary)

    @pytest.mark.asyncio
    async def test_periodic_sweeps_until_stopped(self, oracle: PriceOracle) -> None:
        scheduler = Scheduler(oracle, interval=0.01)

        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert not scheduler.running
        assert scheduler.state is SchedulerState.STOPPED
        assert oracle.get_stats().sweeps_completed >= 2
        assert oracle.cancel_event.is_set()

    @pytest.mark.asyncio
    async def test_overrunning_sweep_is_joined_by_next_tick(self) -> None:
        gate = asyncio.Event()
        source = ScriptedSource("slow", [43250.50], gate=gate)
        chain = FallbackChain(
            AssetType.CRYPTO, [source], RetryPolicy(max_retries=1, retry_delay=0)
        )
        oracle = PriceOracle(
            symbols={AssetType.CRYPTO: ("bitcoin",)}, chains={AssetType.CRYPTO: chain}
        )
        scheduler = Scheduler(oracle, interval=0.01)

        scheduler.start()
        await asyncio.sleep(0.1)
        assert scheduler.state is SchedulerState.REFRESHING
        assert len(source.calls) == 1
        gate.set()
        await scheduler.stop()

        assert len(source.calls) == 1
        assert oracle.get_stats().sweeps_completed >= 2
        assert oracle.get_price("crypto", "bitcoin").price == 43250.50

    @pytest.mark.asyncio
    async def test_stop_cancels_long_backoff(self) -> None:
        source = ScriptedSource("flaky", [FetchErrorKind.NETWORK])
        chain = FallbackChain(
            AssetType.CRYPTO, [source], RetryPolicy(max_retries=5, retry_delay=60)
        )
        oracle = PriceOracle(
            symbols={AssetType.CRYPTO: ("bitcoin",)}, chains={AssetType.CRYPTO: chain}
        )
        scheduler = Scheduler(oracle, interval=60)

        scheduler.start()
        await asyncio.sleep(0.05)
        await asyncio.wait_for(scheduler.stop(), timeout=2.0)

        assert len(source.calls) == 1

    @pytest.mark.asyncio
    async def test_sweep_error_does_not_kill_loop(self) -> None:
        fake_oracle = MagicMock()
        fake_oracle.sweep = AsyncMock(
            side_effect=[RuntimeError("boom")] + [SweepSummary()] * 50
        )
        fake_oracle.shutdown = AsyncMock()
        scheduler = Scheduler(fake_oracle, interval=0.01)

        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert fake_oracle.sweep.await_count >= 2
        fake_oracle.shutdown.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_force_delegates_to_oracle(self) -> None:
        fake_oracle = MagicMock()
        fake_oracle.force_update = AsyncMock(return_value=SweepSummary(updated_count=3))
        scheduler = Scheduler(fake_oracle, interval=30)

        summary = await scheduler.force("stock")

        assert summary.updated_count == 3
        fake_oracle.force_update.assert_awaited_once_with("stock")
