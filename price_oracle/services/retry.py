"""Bounded retry with linear backoff around a single source call."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..interfaces.source import PriceSource
from ..models import FetchError, FetchErrorKind, FetchOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Up to ``max_retries`` attempts; ``retry_delay * attempt`` seconds between them.

    Only network, timeout and rate-limit failures are retried. Invalid-symbol
    and malformed-response failures return immediately, since asking the same
    provider again cannot help.
    """

    max_retries: int = 3
    retry_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        return self.retry_delay * attempt

    async def call(
        self,
        source: PriceSource,
        symbol: str,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> FetchOutcome:
        """Call ``source.fetch`` until it succeeds or the budget is spent.

        A set ``cancel`` event stops further attempts (and cuts a pending
        backoff short); an attempt already in flight is never interrupted.
        """
        last: FetchOutcome | None = None

        for attempt in range(1, self.max_retries + 1):
            if cancel is not None and cancel.is_set():
                break

            outcome = await source.fetch(symbol, timeout)
            if outcome.ok:
                if attempt > 1:
                    logger.info(
                        "%s succeeded for %s on attempt %d/%d",
                        source.name, symbol, attempt, self.max_retries,
                    )
                return outcome

            last = outcome
            error = outcome.error
            if not error.retryable:
                logger.debug(
                    "%s: not retrying %s for %s", source.name, error.kind.value, symbol
                )
                return outcome

            logger.debug(
                "Attempt %d/%d failed for %s via %s: %s",
                attempt, self.max_retries, symbol, source.name, error,
            )
            if attempt < self.max_retries:
                if await _backoff(self.delay_for(attempt), cancel):
                    break

        if last is None:
            return FetchOutcome.failure(
                FetchError(FetchErrorKind.CANCELLED, source.name, "shutdown requested")
            )
        return last


async def _backoff(delay: float, cancel: asyncio.Event | None) -> bool:
    """Sleep for ``delay`` seconds; return True if cancelled meanwhile."""
    if cancel is None:
        await asyncio.sleep(delay)
        return False
    if delay <= 0:
        return cancel.is_set()
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True
