"""Command line entry point for inventory syncs.

Run once (cron friendly):
    python -m wcd_sync.cli.sync [--force] [--db PATH]

Run the scheduler with the daily sync and deferred jobs:
    python -m wcd_sync.cli.sync --serve

Drain deferred jobs that are due and exit:
    python -m wcd_sync.cli.sync --run-due
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from wcd_sync.adapters.webchangedetector.models import SyncStatus
from wcd_sync.adapters.webchangedetector.sync.work_items import JobStatus
from wcd_sync.config import load_config
from wcd_sync.core.logging_utils import setup_json_logging
from wcd_sync.db.session import DatabaseSessionManager
from wcd_sync.services.runtime import build_runtime
from wcd_sync.services.scheduler import SchedulerService

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wcd_sync.adapters.webchangedetector.models import SyncOutcome
    from wcd_sync.services.runtime import SyncRuntime

logger = logging.getLogger("wcd_sync.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def print_outcome(outcome: SyncOutcome) -> None:
    print("\n=== Inventory Sync Summary ===")
    print(f"Status: {outcome.status.value}")
    if outcome.status is SyncStatus.RATE_GATED:
        print(f"Already synced at {outcome.message}. Use --force to sync anyway.")
    elif outcome.message:
        print(f"Finished: {outcome.message}")
    if outcome.collection_id:
        print(f"Collection: {outcome.collection_id}")
    print(
        f"Uploaded {outcome.items_uploaded} URLs in {outcome.batches_uploaded} batches "
        f"({outcome.batches_failed} failed)"
    )
    if outcome.errors:
        print(f"\nErrors ({len(outcome.errors)}):")
        for err in outcome.errors[:10]:
            print(f"  - {err}")


async def run_once(runtime: SyncRuntime, *, force: bool) -> int:
    async with runtime.content_store:
        outcome = await runtime.sync_service.sync_posts(force=force)
    print_outcome(outcome)
    return EXIT_FAILED if outcome.status is SyncStatus.FAILED else EXIT_OK


async def run_due(runtime: SyncRuntime) -> int:
    scheduler = SchedulerService(runtime)
    results = await scheduler.queue.run_due()
    for task_name, status in results.items():
        print(f"{task_name}: {status.value if status else 'not claimed'}")
    pending = await scheduler.queue.store.async_count_pending()
    print(f"{len(results)} due job(s) run, {pending} still pending")
    failed = any(status is JobStatus.FAILED for status in results.values())
    return EXIT_FAILED if failed else EXIT_OK


async def serve(runtime: SyncRuntime) -> int:
    scheduler = SchedulerService(runtime)
    await scheduler.start()
    logger.info(
        "scheduler_serving",
        extra={"next_daily_sync": str(scheduler.get_next_run_time())},
    )
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync the WordPress URL inventory to WebChangeDetector"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the minimum interval since the last sync",
    )
    parser.add_argument("--db", default=None, help="SQLite database path (overrides DB_PATH)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--serve",
        action="store_true",
        help="Keep running: daily sync, deferred jobs and cleanup",
    )
    mode.add_argument(
        "--run-due",
        action="store_true",
        help="Run deferred jobs that are due and exit",
    )
    return parser


async def main_async(args: argparse.Namespace) -> int:
    try:
        cfg = load_config()
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    setup_json_logging(
        cfg.runtime.log_level,
        use_loguru=cfg.runtime.use_loguru,
        log_file=cfg.runtime.log_file,
    )
    if not cfg.wcd.api_token:
        logger.warning("wcd_api_token_missing")
    if not cfg.wordpress.site_url:
        print("ERROR: WP_SITE_URL is not configured", file=sys.stderr)
        return EXIT_CONFIG

    db = DatabaseSessionManager(args.db or cfg.runtime.db_path)
    db.migrate()
    runtime = build_runtime(cfg, db)
    try:
        if args.serve:
            return await serve(runtime)
        if args.run_due:
            return await run_due(runtime)
        return await run_once(runtime, force=args.force)
    finally:
        db.close()


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()
