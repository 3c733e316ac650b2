#!/usr/bin/env python3
"""
Catalog Feed Sync - Main Entry Point
Sync the vendor XML feed into the storefront catalog.

Usage:
    python main.py
    python main.py --dry-run
    python main.py --feed-url https://vendor.example/feed.xml --log-level DEBUG
    python main.py --json-logs

Exit codes:
    0  success (catalog written, or nothing changed)
    1  fatal error (missing config, fetch/parse failure, empty batch)

Run at most one instance at a time; the scheduler must not overlap runs.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from feedsync.exceptions import CatalogSyncError
from feedsync.logging_config import setup_logging
from feedsync.models import SyncOutcome, SyncSummary
from feedsync.notifications import NotificationService
from feedsync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


def print_report(summary: SyncSummary):
    """Print final sync report to console."""
    print("\n" + "=" * 60)
    print("SYNC REPORT")
    print("=" * 60)

    print(f"Outcome: {summary.outcome.value}")
    print(f"Time:    {summary.timestamp.strftime('%Y-%m-%d %H:%M:%S')}")
    print()
    print(f"Feed size:          {summary.feed_bytes / 1024 / 1024:.1f}MB")
    print(f"Records parsed:     {summary.records_parsed}")
    print(f"Valid products:     {summary.products_count}")
    print(f"Skipped records:    {summary.transform.skipped}")

    if summary.delta is not None:
        print()
        print(f"New products:       {summary.delta.new}")
        print(f"Removed products:   {summary.delta.removed}")
        print(f"Changed products:   {summary.delta.changed}")
        print(f"Unchanged:          {summary.delta.unchanged}")

    if summary.files_written:
        print()
        for path in summary.files_written:
            print(f"Wrote: {path}")

    if summary.error:
        print()
        print(f"ERROR: {summary.error}")

    print("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Catalog Feed Sync - vendor XML feed to storefront catalog"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the delta but do not write any file",
    )
    parser.add_argument(
        "--feed-url",
        dest="feed_url",
        help="Override LIBERTA_FEED_URL",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL setting)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        dest="json_logs",
        help="Emit JSON log lines on the console",
    )
    return parser


def main(argv=None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    run_settings = settings
    if args.feed_url:
        run_settings = settings.model_copy(update={"liberta_feed_url": args.feed_url})

    setup_logging(
        level=args.log_level or run_settings.log_level,
        json_format=args.json_logs or run_settings.log_json_format,
        log_file=str(run_settings.log_file) if run_settings.log_file else None,
        max_bytes=run_settings.log_rotation_mb * 1024 * 1024,
    )

    notifier = None
    if run_settings.discord_webhook_configured:
        notifier = NotificationService(discord_webhook_url=run_settings.discord_webhook_url)

    orchestrator = SyncOrchestrator(run_settings, notifier=notifier)
    try:
        summary = orchestrator.run(dry_run=args.dry_run or run_settings.dry_run)
    except CatalogSyncError as e:
        logger.error(f"ERROR: {e}")
        summary = e.summary if e.summary is not None else SyncSummary(
            outcome=SyncOutcome.FAILED, error=str(e)
        )
        print_report(summary)
        return 1
    finally:
        if notifier is not None:
            notifier.close()

    print_report(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
