"""Unit tests for CLI argument parsing and output formatting."""
from __future__ import annotations

import pytest

from price_oracle.cli import build_parser, format_price, format_summary
from price_oracle.models import (
    AssetType,
    FetchError,
    FetchErrorKind,
    SweepSummary,
    SymbolFailure,
)


class TestBuildParser:
    def test_start_command_defaults(self) -> None:
        args = build_parser().parse_args(["start"])
        assert args.command == "start"
        assert args.interval is None
        assert args.once is False

    def test_start_command_options(self) -> None:
        args = build_parser().parse_args(["start", "--interval", "5", "--once"])
        assert args.interval == 5.0
        assert args.once is True

    def test_price_command(self) -> None:
        args = build_parser().parse_args(["price", "AAPL", "--asset-type", "stock"])
        assert args.command == "price"
        assert args.symbol == "AAPL"
        assert args.asset_type == "stock"

    def test_price_defaults_to_crypto(self) -> None:
        args = build_parser().parse_args(["price", "bitcoin"])
        assert args.asset_type == "crypto"

    def test_list_and_update_default_to_all(self) -> None:
        parser = build_parser()
        assert parser.parse_args(["list"]).asset_type == "all"
        assert parser.parse_args(["update"]).asset_type == "all"

    def test_update_rejects_unknown_scope(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["update", "--asset-type", "bonds"])

    def test_stats_command(self) -> None:
        assert build_parser().parse_args(["stats"]).command == "stats"

    def test_config_flag(self) -> None:
        args = build_parser().parse_args(["--config", "/tmp/c.yaml", "stats"])
        assert args.config == "/tmp/c.yaml"

    def test_log_level_flag(self) -> None:
        args = build_parser().parse_args(["--log-level", "DEBUG", "stats"])
        assert args.log_level == "DEBUG"

    def test_no_command(self) -> None:
        args = build_parser().parse_args([])
        assert args.command is None


class TestFormatting:
    def test_format_large_price(self) -> None:
        assert format_price(43250.5) == "$43,250.50"

    def test_format_small_price(self) -> None:
        assert format_price(0.000012) == "$0.000012"

    def test_summary_lists_failures_and_fallbacks(self) -> None:
        summary = SweepSummary(
            updated_count=1,
            failed=(
                SymbolFailure(
                    AssetType.STOCK,
                    "ZZZZ",
                    FetchError(FetchErrorKind.INVALID_SYMBOL, "yahoo"),
                ),
            ),
            fallbacks=(
                SymbolFailure(
                    AssetType.CRYPTO,
                    "bitcoin",
                    FetchError(FetchErrorKind.RATE_LIMITED, "binance", "HTTP 429"),
                ),
            ),
        )
        text = format_summary(summary)
        assert "Updated: 1  Failed: 1" in text
        assert "ZZZZ: yahoo: invalid_symbol" in text
        assert "binance: rate_limited (HTTP 429)" in text
