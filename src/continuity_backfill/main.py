"""
Backfill CLI Entry Point

    continuity-backfill --dry-run     # preview, no writes
    continuity-backfill               # execute backfill

Exit code 0 on completion (per-record errors are reported, not fatal), 1 on
invalid configuration or any fatal failure such as an unreadable legacy
store. Requires exclusive access to the destination database.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import Settings, get_settings
from .db.destination import DestinationSystem
from .legacy.source import LegacyStore
from .pipeline.archive import ArchiveStore
from .pipeline.orchestrator import BackfillPipeline
from .pipeline.report import BackfillReport, render_report

logger = logging.getLogger("backfill.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="continuity-backfill",
        description="Backfill formational records from the legacy knowledge store "
        "into the continuity store.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview what would happen without writing archives or exchanges",
    )
    parser.add_argument(
        "--fallback-date",
        help="YYYY-MM-DD date for records with unparseable timestamps "
        "(overrides BACKFILL_FALLBACK_DATE)",
    )
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Fully rewrite exchanges that were already migrated",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Only read the first N legacy entries",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


async def run_backfill(
    settings: Settings,
    dry_run: bool = False,
    replace_existing: bool = False,
    max_records: Optional[int] = None,
) -> BackfillReport:
    destination = None if dry_run else DestinationSystem.from_settings(settings)
    try:
        if destination is not None:
            await destination.initialize()

        pipeline = BackfillPipeline(
            settings,
            LegacyStore(settings.legacy_db_path),
            ArchiveStore(settings.archive_dir),
            destination=destination,
            max_records=max_records,
            replace_existing=replace_existing,
        )
        return await pipeline.run(dry_run=dry_run)
    finally:
        if destination is not None:
            await destination.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = get_settings(fallback_date=args.fallback_date)
    except ValidationError as exc:
        logger.error("Invalid configuration:\n%s", exc)
        return 1

    try:
        report = asyncio.run(
            run_backfill(
                settings,
                dry_run=args.dry_run,
                replace_existing=args.replace,
                max_records=args.limit,
            )
        )
    except Exception:
        logger.exception("FATAL: backfill aborted")
        return 1

    print(
        render_report(
            report,
            skip_types=settings.skip_memory_types,
            low_weight_types=settings.low_weight_memory_types,
        )
    )
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
