"""Unit tests for the price cache — monotonic upserts and concurrent access."""
from __future__ import annotations

import random
import threading

from conftest import make_entry
from price_oracle.models import AssetType
from price_oracle.services.cache import PriceCache


class TestPriceCache:
    def test_get_missing_returns_none(self) -> None:
        assert PriceCache().get(AssetType.CRYPTO, "bitcoin") is None

    def test_upsert_and_get(self) -> None:
        cache = PriceCache()
        entry = make_entry()
        assert cache.upsert(entry) is True
        assert cache.get(AssetType.CRYPTO, "bitcoin") is entry

    def test_get_normalizes_symbol(self) -> None:
        cache = PriceCache()
        cache.upsert(make_entry(symbol="AAPL", asset_type=AssetType.STOCK))
        assert cache.get(AssetType.STOCK, "aapl") is not None

    def test_newer_entry_replaces(self) -> None:
        cache = PriceCache()
        cache.upsert(make_entry(price=1.0))
        newer = make_entry(price=2.0, age_seconds=5)
        assert cache.upsert(newer) is True
        assert cache.get(AssetType.CRYPTO, "bitcoin") is newer

    def test_older_entry_dropped(self) -> None:
        cache = PriceCache()
        current = make_entry(price=2.0, age_seconds=5)
        cache.upsert(current)
        assert cache.upsert(make_entry(price=1.0)) is False
        assert cache.get(AssetType.CRYPTO, "bitcoin") is current

    def test_equal_timestamp_replaces(self) -> None:
        cache = PriceCache()
        cache.upsert(make_entry(source="binance"))
        later_write = make_entry(source="coinbase")
        assert cache.upsert(later_write) is True
        assert cache.get(AssetType.CRYPTO, "bitcoin").source == "coinbase"

    def test_asset_types_are_separate(self) -> None:
        cache = PriceCache()
        cache.upsert(make_entry(symbol="sui"))
        cache.upsert(make_entry(symbol="SUI", asset_type=AssetType.STOCK))
        assert cache.count(AssetType.CRYPTO) == 1
        assert cache.count(AssetType.STOCK) == 1
        assert len(cache) == 2
        assert [e.symbol for e in cache.get_all(AssetType.STOCK)] == ["SUI"]

    def test_last_updated(self) -> None:
        cache = PriceCache()
        assert cache.last_updated() is None
        cache.upsert(make_entry(symbol="bitcoin", age_seconds=10))
        cache.upsert(make_entry(symbol="AAPL", asset_type=AssetType.STOCK, age_seconds=20))
        assert cache.last_updated() == make_entry(age_seconds=20).fetched_at
        assert cache.last_updated(AssetType.CRYPTO) == make_entry(age_seconds=10).fetched_at


class TestConcurrentUpserts:
    def test_newest_timestamp_wins_across_threads(self) -> None:
        cache = PriceCache()
        offsets = list(range(200))
        random.Random(7).shuffle(offsets)
        chunks = [offsets[i::4] for i in range(4)]

        def writer(chunk: list[int]) -> None:
            for offset in chunk:
                cache.upsert(make_entry(price=float(offset + 1), age_seconds=offset))

        threads = [threading.Thread(target=writer, args=(c,)) for c in chunks]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        final = cache.get(AssetType.CRYPTO, "bitcoin")
        assert final.price == 200.0
        assert final.fetched_at == make_entry(age_seconds=199).fetched_at
