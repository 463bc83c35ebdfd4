#!/usr/bin/env python3
"""
Depth Viewer - live order-book depth chart for Binance spot.

Usage:
    python -m depth_viewer.main --symbol btcusdt

    Or via the console script:
    depth-viewer ethusdt --pressure-method "mean+1.2*std"

Controls:
    q - Quit
    r - Reconnect after a dropped feed
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import Config, load_config
from .engine.pressure import PRESSURE_METHODS
from .exceptions import ConfigError

logger = logging.getLogger(__name__)


def setup_logging(level: str, log_file: str | None = None) -> None:
    # The TUI owns the terminal, so log lines go to a file when one is given
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        filename=log_file,
    )
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


async def main(config: Config) -> None:
    """Main entry point - runs data feed and UI concurrently."""

    # Import here to avoid slow startup for --help
    from .datafeed.binance_client import BinanceDepthClient
    from .engine.pipeline import DepthEngine
    from .ui.depth_view import run_ui

    logger.info(
        f"Starting Depth Viewer for {config.feed.symbol.upper()} "
        f"(depth={config.depth}, history={config.history_capacity}, "
        f"pressure={config.pressure_method})"
    )

    engine = DepthEngine(config)
    client = BinanceDepthClient(engine, config.feed)

    async def run_feed() -> None:
        try:
            await client.run()
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Feed error")

    feed_task = asyncio.create_task(run_feed())

    try:
        # Run UI (blocks until quit)
        await run_ui(client)
    finally:
        client.stop()
        feed_task.cancel()
        try:
            await feed_task
        except asyncio.CancelledError:
            pass
        stats = engine.stats
        logger.info(
            f"Stopped: accepted={stats.accepted} rejected={stats.rejected} "
            f"out_of_order={stats.out_of_order} excluded_levels={stats.excluded_levels}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Depth Viewer - live order-book depth chart for Binance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m depth_viewer.main btcusdt
    python -m depth_viewer.main ethusdt --history 60 --auto-reconnect
    python -m depth_viewer.main --config depth.json --log-file depth.log
        """
    )

    parser.add_argument(
        "symbol",
        nargs="?",
        default=None,
        help="Trading symbol (default: btcusdt)"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON config file"
    )

    parser.add_argument(
        "--depth",
        type=int,
        default=None,
        help="Price levels per side (default: 20)"
    )

    parser.add_argument(
        "--history",
        type=int,
        default=None,
        dest="history_capacity",
        help="Snapshots kept for the ghost trail (default: 30)"
    )

    parser.add_argument(
        "--pressure-method",
        choices=sorted(PRESSURE_METHODS),
        default=None,
        help="Pressure zone threshold rule"
    )

    parser.add_argument(
        "--auto-reconnect",
        action="store_true",
        default=None,
        help="Reconnect with exponential backoff instead of waiting for 'r'"
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-file",
        default=None,
        help="Write logs to this file"
    )

    return parser


def cli(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            args.config,
            symbol=args.symbol,
            depth=args.depth,
            history_capacity=args.history_capacity,
            pressure_method=args.pressure_method,
            auto_reconnect=args.auto_reconnect,
            log_level=args.log_level,
        )
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.log_level, args.log_file)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested.")
        sys.exit(0)


if __name__ == "__main__":
    cli()
