"""Shared HTTP plumbing for price sources.

Each concrete source issues exactly one GET per ``fetch`` and turns every
failure mode (HTTP status, transport error, timeout, unusable payload)
into a typed :class:`~price_oracle.models.FetchError` instead of raising.
"""
from __future__ import annotations

import asyncio
import logging
import math
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import ProviderConfig
from ..models import (
    AssetType,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    PriceEntry,
    utc_now,
)

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class SourceError(Exception):
    """Internal signal carrying a fetch failure kind up to ``fetch``."""

    def __init__(self, kind: FetchErrorKind, message: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class HttpSource:
    """Base class for JSON-over-HTTP price sources."""

    name: str = ""
    asset_type: AssetType = AssetType.CRYPTO
    default_base_url: str = ""
    requires_api_key: bool = False
    # HTTP statuses meaning "this provider does not know the symbol".
    invalid_symbol_statuses: tuple[int, ...] = (404,)

    def __init__(self, config: ProviderConfig, default_timeout: float = 30.0) -> None:
        self.base_url = (config.base_url or self.default_base_url).rstrip("/")
        self.api_key = config.api_key
        self.timeout = config.timeout or default_timeout

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, base_url={self.base_url!r})"

    async def fetch(self, symbol: str, timeout: float | None = None) -> FetchOutcome:
        """Single attempt, single round-trip; never raises for fetch failures."""
        symbol = self.asset_type.normalize(symbol)
        try:
            entry = await self._fetch_entry(symbol, timeout or self.timeout)
        except SourceError as e:
            return self._failure(symbol, e.kind, e.message)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            return self._failure(
                symbol,
                FetchErrorKind.MALFORMED_RESPONSE,
                f"{type(e).__name__}: {e}",
            )
        return FetchOutcome.success(entry)

    async def _fetch_entry(self, symbol: str, timeout: float) -> PriceEntry:
        raise NotImplementedError

    def _failure(
        self, symbol: str, kind: FetchErrorKind, message: str
    ) -> FetchOutcome:
        logger.warning("%s failed for %s: %s %s", self.name, symbol, kind.value, message)
        return FetchOutcome.failure(FetchError(kind=kind, source=self.name, message=message))

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _get_json(
        self,
        url: str,
        timeout: float,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``url`` and decode JSON, mapping failures to SourceError."""
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        logger.debug("%s GET %s params=%s", self.name, url, _redact(params))
        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as response:
                    status = response.status
                    if status == 429:
                        raise SourceError(FetchErrorKind.RATE_LIMITED, "HTTP 429")
                    if status in self.invalid_symbol_statuses:
                        raise SourceError(FetchErrorKind.INVALID_SYMBOL, f"HTTP {status}")
                    if status != 200:
                        raise SourceError(FetchErrorKind.NETWORK, f"HTTP {status}")
                    try:
                        return await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        raise SourceError(
                            FetchErrorKind.MALFORMED_RESPONSE, f"invalid JSON: {e}"
                        ) from e
        except SourceError:
            raise
        except asyncio.TimeoutError as e:
            raise SourceError(
                FetchErrorKind.TIMEOUT, f"no response within {timeout:g}s"
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            raise SourceError(FetchErrorKind.NETWORK, f"{type(e).__name__}: {e}") from e

    # ------------------------------------------------------------------
    # Normalization helpers
    # ------------------------------------------------------------------

    def _entry(
        self,
        symbol: str,
        price: float,
        change_24h: float | None = None,
        change_24h_percent: float | None = None,
        volume_24h: float | None = None,
    ) -> PriceEntry:
        if not math.isfinite(price) or price <= 0:
            raise SourceError(
                FetchErrorKind.MALFORMED_RESPONSE, f"non-positive price {price!r}"
            )
        return PriceEntry(
            asset_type=self.asset_type,
            symbol=symbol,
            price=price,
            fetched_at=utc_now(),
            source=self.name,
            change_24h=change_24h,
            change_24h_percent=change_24h_percent,
            volume_24h=volume_24h,
        )


def to_float(value: Any, field_name: str) -> float:
    """Parse a required numeric field (providers send numbers or strings)."""
    if value is None or isinstance(value, bool):
        raise SourceError(
            FetchErrorKind.MALFORMED_RESPONSE, f"missing field '{field_name}'"
        )
    try:
        return float(str(value).strip().rstrip("%"))
    except ValueError:
        raise SourceError(
            FetchErrorKind.MALFORMED_RESPONSE,
            f"non-numeric field '{field_name}': {value!r}",
        ) from None


def optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip().rstrip("%"))
    except ValueError:
        return None


def _redact(params: dict[str, str] | None) -> dict[str, str] | None:
    if not params:
        return params
    return {
        k: ("***" if k in ("apikey", "token", "api_key") else v)
        for k, v in params.items()
    }
