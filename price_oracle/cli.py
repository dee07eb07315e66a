"""Command-line interface for the price oracle."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import AppConfig, load_config
from .errors import PriceNotFound
from .logging_setup import configure_logging
from .models import AssetType, OracleStats, PriceEntry, SweepSummary
from .services import PriceOracle, Scheduler

logger = logging.getLogger(__name__)

_SCOPES = ["crypto", "stock", "all"]


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="price-oracle",
        description="Crypto and stock price oracle with multi-source fallback",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    start_parser = sub.add_parser("start", help="Run the refresh scheduler")
    start_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between sweeps (overrides config)",
    )
    start_parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )

    price_parser = sub.add_parser("price", help="Fetch and show one price")
    price_parser.add_argument("symbol", help="Coin id (bitcoin) or stock ticker (AAPL)")
    price_parser.add_argument(
        "--asset-type",
        default="crypto",
        choices=["crypto", "stock"],
        help="Asset type of SYMBOL (default: crypto)",
    )

    list_parser = sub.add_parser("list", help="List configured symbols")
    list_parser.add_argument("--asset-type", default="all", choices=_SCOPES)

    sub.add_parser("stats", help="Run one sweep and show statistics")

    update_parser = sub.add_parser("update", help="Force an immediate update")
    update_parser.add_argument("--asset-type", default="all", choices=_SCOPES)

    return parser


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def format_price(value: float) -> str:
    if value >= 1:
        return f"${value:,.2f}"
    return f"${value:.6f}"


def format_change(entry: PriceEntry) -> str:
    if entry.change_24h_percent is None:
        return "n/a"
    return f"{entry.change_24h_percent:+.2f}%"


def format_price_table(oracle: PriceOracle) -> str:
    lines: list[str] = []
    for asset_type in AssetType:
        entries = oracle.get_all_prices(asset_type)
        if not entries:
            continue
        lines.append(f"{asset_type.value.upper()} ({len(entries)})")
        for entry in entries:
            lines.append(
                f"  {entry.symbol:<16} {format_price(entry.price):>16}  "
                f"{format_change(entry):>9}  via {entry.source}"
            )
    if not lines:
        return "No prices cached yet."
    return "\n".join(lines)


def format_summary(summary: SweepSummary) -> str:
    lines = [f"Updated: {summary.updated_count}  Failed: {summary.failed_count}"]
    for failure in summary.failed:
        lines.append(f"  FAILED {failure.asset_type.value} {failure.symbol}: {failure.error}")
    for fallback in summary.fallbacks:
        lines.append(
            f"  fallback {fallback.asset_type.value} {fallback.symbol}: {fallback.error}"
        )
    return "\n".join(lines)


def format_stats(stats: OracleStats) -> str:
    lines = [f"Uptime: {stats.uptime_seconds:.0f}s  Sweeps: {stats.sweeps_completed}"]
    for asset_type in AssetType:
        line = (
            f"{asset_type.value}: {stats.cached_counts.get(asset_type, 0)}"
            f"/{stats.configured_counts.get(asset_type, 0)} cached"
        )
        average = stats.average_prices.get(asset_type)
        if average is not None:
            line += f", average {format_price(average)}"
        lines.append(line)
    last = stats.last_update.isoformat() if stats.last_update else "never"
    lines.append(f"Last update: {last}")
    for source in stats.sources:
        lines.append(
            f"  {source.source:<14} ok={source.successes} failed={source.failures}"
            + (f" last_error={source.last_error}" if source.last_error else "")
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _start(config: AppConfig, oracle: PriceOracle, args: argparse.Namespace) -> None:
    interval = args.interval or config.scheduler.interval_seconds
    scheduler = Scheduler(
        oracle,
        interval=interval,
        on_sweep=lambda summary: print(format_price_table(oracle)),
    )
    if args.once:
        summary = await scheduler.run_once()
        print(format_summary(summary))
        return

    runner = scheduler.start()
    try:
        await runner
    finally:
        await scheduler.stop()


async def _price(oracle: PriceOracle, args: argparse.Namespace) -> None:
    asset_type = AssetType.parse(args.asset_type)
    symbol = asset_type.normalize(args.symbol)
    await oracle.refresh(asset_type, symbol)
    try:
        entry = oracle.get_price(asset_type, symbol)
    except PriceNotFound:
        print(f"{symbol}: unavailable")
        return
    print(
        f"{entry.symbol}: {format_price(entry.price)} "
        f"({format_change(entry)}, {entry.source}, {entry.fetched_at.isoformat()})"
    )


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    oracle = PriceOracle.from_config(config)

    if args.command == "start":
        await _start(config, oracle, args)
    elif args.command == "price":
        await _price(oracle, args)
    elif args.command == "list":
        for asset_type, symbols in oracle.list_symbols(args.asset_type).items():
            if symbols:
                print(f"{asset_type.value}: {', '.join(symbols)}")
    elif args.command == "stats":
        await oracle.sweep()
        print(format_stats(oracle.get_stats()))
    elif args.command == "update":
        summary = await oracle.force_update(args.asset_type)
        print(format_summary(summary))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
