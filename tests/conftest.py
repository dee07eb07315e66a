"""Shared test fixtures and sample data."""
from __future__ import annotations

import asyncio
import textwrap
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Union

import pytest

from price_oracle.config import (
    AppConfig,
    CryptoConfig,
    GeneralConfig,
    ProviderConfig,
    SchedulerConfig,
    StockConfig,
)
from price_oracle.models import (
    AssetType,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    PriceEntry,
    utc_now,
)

Step = Union[float, FetchErrorKind]


# ---------------------------------------------------------------------------
# Fake price source
# ---------------------------------------------------------------------------


class ScriptedSource:
    """In-memory source that plays back a script of prices and error kinds.

    Each ``fetch`` consumes the next step; once the script runs out the
    last step repeats. ``gate`` (when given) holds every fetch until set;
    ``open`` / ``peak_open`` count fetches currently held.
    """

    def __init__(
        self,
        name: str,
        steps: list[Step],
        asset_type: AssetType = AssetType.CRYPTO,
        gate: asyncio.Event | None = None,
    ) -> None:
        self._name = name
        self._asset_type = asset_type
        self._steps = list(steps)
        self.gate = gate
        self.calls: list[str] = []
        self.open = 0
        self.peak_open = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def asset_type(self) -> AssetType:
        return self._asset_type

    async def fetch(self, symbol: str, timeout: float | None = None) -> FetchOutcome:
        self.calls.append(symbol)
        self.open += 1
        self.peak_open = max(self.peak_open, self.open)
        try:
            if self.gate is not None:
                await self.gate.wait()
        finally:
            self.open -= 1
        step = self._steps.pop(0) if len(self._steps) > 1 else self._steps[0]
        if isinstance(step, FetchErrorKind):
            return FetchOutcome.failure(FetchError(step, self._name, "scripted"))
        return FetchOutcome.success(
            PriceEntry(
                asset_type=self._asset_type,
                symbol=symbol,
                price=step,
                fetched_at=utc_now(),
                source=self._name,
            )
        )


def make_entry(
    symbol: str = "bitcoin",
    price: float = 43250.50,
    asset_type: AssetType = AssetType.CRYPTO,
    source: str = "binance",
    fetched_at: datetime | None = None,
    age_seconds: float = 0.0,
) -> PriceEntry:
    stamp = fetched_at or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    return PriceEntry(
        asset_type=asset_type,
        symbol=symbol,
        price=price,
        fetched_at=stamp + timedelta(seconds=age_seconds),
        source=source,
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        general=GeneralConfig(
            request_timeout=5.0, max_retries=2, retry_delay=0.0, max_concurrency=4
        ),
        scheduler=SchedulerConfig(interval_seconds=10.0),
        crypto=CryptoConfig(
            symbols=("bitcoin", "ethereum"),
            sources=("binance", "coinbase", "coingecko"),
        ),
        stocks=StockConfig(symbols=("AAPL",), sources=("finnhub", "yahoo")),
        providers={"finnhub": ProviderConfig(api_key="fh-key")},
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    general:
      request_timeout: 15
      max_retries: 2
      retry_delay: 0.5
      max_concurrency: 4
    scheduler:
      interval_seconds: 20
    crypto:
      vs_currency: USD
      symbols: [Bitcoin, ethereum, bitcoin, " sui "]
      sources: [binance, coingecko]
      ticker_aliases:
        wrapped-bitcoin: wbtc
    stocks:
      symbols: [aapl, MSFT]
      sources: [finnhub, yahoo]
    providers:
      finnhub:
        api_key: "fh-key"
        timeout: 10
      coingecko:
        base_url: "https://cg.example.com/api/v3"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
