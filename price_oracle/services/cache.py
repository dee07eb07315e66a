"""In-memory price cache — latest entry per (asset type, symbol).

Entries are immutable, so a reader always sees a whole entry and never a
half-written one. A single lock guards the mapping; it is only held for
dict operations, never across I/O, and works from coroutines and threads
alike.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime

from ..models import AssetType, PriceEntry

logger = logging.getLogger(__name__)


class PriceCache:
    """Latest known price per instrument with a monotonic-timestamp guard."""

    def __init__(self) -> None:
        self._entries: dict[tuple[AssetType, str], PriceEntry] = {}
        self._lock = threading.Lock()

    def get(self, asset_type: AssetType, symbol: str) -> PriceEntry | None:
        key = (asset_type, asset_type.normalize(symbol))
        with self._lock:
            return self._entries.get(key)

    def get_all(self, asset_type: AssetType) -> list[PriceEntry]:
        with self._lock:
            return [e for (t, _), e in self._entries.items() if t is asset_type]

    def upsert(self, entry: PriceEntry) -> bool:
        """Store ``entry`` unless the cached one is strictly newer.

        Returns True when stored. An older result arriving late (retry or
        fallback overlap) is dropped silently.
        """
        key = entry.key
        with self._lock:
            current = self._entries.get(key)
            if current is not None and entry.fetched_at < current.fetched_at:
                stale = True
            else:
                self._entries[key] = entry
                stale = False

        if stale:
            logger.debug(
                "Dropped stale %s %s from %s (%s < %s)",
                entry.asset_type.value, entry.symbol, entry.source,
                entry.fetched_at.isoformat(), current.fetched_at.isoformat(),
            )
        return not stale

    def count(self, asset_type: AssetType | None = None) -> int:
        with self._lock:
            if asset_type is None:
                return len(self._entries)
            return sum(1 for t, _ in self._entries if t is asset_type)

    def last_updated(self, asset_type: AssetType | None = None) -> datetime | None:
        """Most recent ``fetched_at`` across the cache (or one asset type)."""
        with self._lock:
            stamps = [
                e.fetched_at
                for (t, _), e in self._entries.items()
                if asset_type is None or t is asset_type
            ]
        return max(stamps) if stamps else None

    def __len__(self) -> int:
        return self.count()
