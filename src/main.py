"""Main entry point with CLI."""
import argparse
import asyncio
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import config, Config
from src.logging_conf import setup_logging
from src.deliver.webhook import WebhookClient
from src.fetch.accessor import ExtractionError, HtmlSnapshotAccessor
from src.jobs.report import JsonReportWriter
from src.jobs.runner import CycleRunner

import logging

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Order-listing sales history tracker")

    parser.add_argument(
        "--snapshots",
        type=Path,
        required=True,
        help="Directory with saved order-listing pages (one HTML file per page)",
    )
    parser.add_argument(
        "--pattern",
        default="*.html",
        help="Glob for snapshot files inside --snapshots (default: *.html)",
    )

    # Mode flags
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single extraction cycle and exit",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode (verbose logs, no webhook delivery)",
    )
    parser.add_argument(
        "--no-report",
        action="store_true",
        help="Do not write a report after new sales",
    )

    # Cycle options
    parser.add_argument(
        "--every",
        type=float,
        default=None,
        help=f"Seconds between cycles (default: {config.SCRAPE_EVERY})",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help=f"Maximum pages per cycle (default: {config.MAX_PAGES})",
    )
    parser.add_argument(
        "--extract-timeout",
        type=float,
        default=None,
        help=f"Seconds before a cycle is abandoned (default: {config.EXTRACT_TIMEOUT})",
    )
    parser.add_argument(
        "--webhook-url",
        default=None,
        help="Override WEBHOOK_URL (empty string disables delivery)",
    )

    return parser.parse_args()


async def run_loop(runner: CycleRunner, every: float, once: bool) -> None:
    """Fixed-interval cycles; a failed cycle is logged and the next tick retries."""
    next_tick = time.monotonic()
    while True:
        next_tick += every
        try:
            await runner.run_cycle()
        except ExtractionError as e:
            logger.warning(f"[CYCLE] Extraction failed, cycle discarded: {e}")
            if once:
                raise
        runner.metrics.report()
        if once:
            return
        await asyncio.sleep(max(0.0, next_tick - time.monotonic()))


def main() -> None:
    """Main entry point."""
    args = parse_args()
    setup_logging("DEBUG" if args.dev else None)

    if args.max_pages:
        Config.MAX_PAGES = args.max_pages
    if args.extract_timeout:
        Config.EXTRACT_TIMEOUT = args.extract_timeout
    if args.webhook_url is not None:
        Config.WEBHOOK_URL = args.webhook_url.strip()
    if args.dev:
        logger.warning("DEV mode: webhook delivery disabled")
        Config.WEBHOOK_URL = ""

    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    every = args.every if args.every is not None else config.SCRAPE_EVERY

    logger.info("=" * 60)
    logger.info("Sales tracker starting")
    logger.info(f"Snapshots: {args.snapshots} ({args.pattern})")
    logger.info(f"Max pages: {config.MAX_PAGES}")
    logger.info(f"Extract timeout: {config.EXTRACT_TIMEOUT}s")
    logger.info(f"Interval: {'once' if args.once else f'{every}s'}")
    logger.info(f"Webhook: {'enabled' if config.WEBHOOK_URL else 'disabled'}")
    logger.info("=" * 60)

    runner = CycleRunner(
        accessor=HtmlSnapshotAccessor.from_directory(args.snapshots, args.pattern),
        reporter=None if args.no_report else JsonReportWriter(),
        webhook=WebhookClient(),
    )
    try:
        asyncio.run(run_loop(runner, every, args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted by user, saving state")
        runner.save_state()
        sys.exit(1)
    except ExtractionError:
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
