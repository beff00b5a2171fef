"""
Backfill Orchestrator

Sequence
--------
read -> filter by type -> deduplicate -> group by date -> chunk ->
merge into archives -> embed + fan-out write -> final count

Stages hand explicit result objects forward; counts end up in a single
``BackfillReport``. Dates are indexed in ascending order, messages within a
date in timestamp order, with a short pause between dates to bound load on
the embedding service.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from ..config import Settings
from ..core.errors import BackfillError
from ..db.destination import DestinationSystem
from ..legacy.source import LegacyStore
from .archive import ArchiveStore
from .dates import group_by_date
from .dedup import canonicalize, deduplicate, type_breakdown
from .messages import MessageBatch, build_messages
from .report import BackfillReport
from .writer import MultiIndexWriter, WriteOutcome, build_exchange_record

logger = logging.getLogger("backfill.pipeline")


@dataclass
class PreparedBackfill:
    """Everything computed before the first write."""

    batches: Dict[str, MessageBatch] = field(default_factory=dict)
    report: BackfillReport = field(default_factory=BackfillReport)


class BackfillPipeline:
    """
    Runs the knowledge -> continuity backfill.
    """

    def __init__(
        self,
        settings: Settings,
        source: LegacyStore,
        archives: ArchiveStore,
        destination: Optional[DestinationSystem] = None,
        max_records: Optional[int] = None,
        replace_existing: bool = False,
    ) -> None:
        self._settings = settings
        self._source = source
        self._archives = archives
        self._destination = destination
        self._max_records = max_records
        self._replace = replace_existing

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, dry_run: bool = False) -> BackfillReport:
        """
        Execute the backfill. A dry run stops before any write.

        Raises
        ------
        BackfillError
            On fatal source or destination failures.
        """
        prepared = await self.prepare()
        report = prepared.report
        report.dry_run = dry_run

        if dry_run:
            logger.info("Dry run: no archive files or exchanges written")
            return report

        if self._destination is None:
            raise BackfillError("A destination system is required for a live run")

        self.write_archives(prepared)
        await self.index(prepared, self._destination)
        return report

    async def prepare(self) -> PreparedBackfill:
        settings = self._settings
        report = BackfillReport()

        records = await self._source.fetch_all(limit=self._max_records)
        report.total_read = len(records)

        filtered = canonicalize(
            records,
            skip_types=settings.skip_memory_types,
            low_weight_types=settings.low_weight_memory_types,
        )
        report.skipped_by_filter = filtered.skipped_by_filter
        report.skipped_empty = filtered.skipped_empty

        deduped = deduplicate(filtered.documents)
        report.duplicates = deduped.duplicate_count
        report.documents = len(deduped.documents)
        report.low_weight_documents = sum(
            1 for doc in deduped.documents if doc.is_low_weight_variant
        )
        report.type_counts = type_breakdown(deduped.documents)

        groups = group_by_date(deduped.documents, settings.fallback_date)
        dates = sorted(groups)
        report.unique_dates = len(dates)
        if dates:
            report.first_date, report.last_date = dates[0], dates[-1]

        prepared = PreparedBackfill(report=report)
        for day in dates:
            batch = build_messages(
                day,
                groups[day],
                chunk_threshold=settings.chunk_threshold,
                chunk_target=settings.chunk_target,
            )
            prepared.batches[day] = batch
            report.chunked_documents += batch.chunked_documents
            report.total_chunks += batch.total_chunks
            report.archive_messages += len(batch.messages)

        logger.info(
            "Prepared %d messages across %d dates (%d read, %d filtered, %d duplicates)",
            report.archive_messages,
            report.unique_dates,
            report.total_read,
            report.skipped_by_filter,
            report.duplicates,
        )
        return prepared

    def write_archives(self, prepared: PreparedBackfill) -> None:
        report = prepared.report
        for day in sorted(prepared.batches):
            result = self._archives.merge_and_save(day, prepared.batches[day].messages)
            if not result.existed:
                report.archive_files_created += 1
            elif result.corrupt:
                report.archive_files_recovered += 1
            elif result.written:
                report.archive_files_updated += 1
        logger.info(
            "Archives: %d new, %d updated, %d recovered",
            report.archive_files_created,
            report.archive_files_updated,
            report.archive_files_recovered,
        )

    async def index(
        self,
        prepared: PreparedBackfill,
        destination: DestinationSystem,
    ) -> None:
        report = prepared.report
        writer = MultiIndexWriter(
            destination.store,
            destination.embed,
            fulltext_enabled=destination.fulltext_enabled,
            replace_existing=self._replace,
        )

        for day in sorted(prepared.batches):
            messages = prepared.batches[day].messages
            if not messages:
                continue

            indexed = 0
            for position, message in enumerate(messages):
                record = build_exchange_record(
                    day,
                    position,
                    message,
                    ordering_key_base=self._settings.ordering_key_base,
                    fallback_created_at=_utc_now_iso(),
                )
                outcome = await writer.write(record)
                if outcome is WriteOutcome.WRITTEN:
                    indexed += 1
                elif outcome is WriteOutcome.SKIPPED_EXISTING:
                    report.already_migrated += 1
                else:
                    report.errors += 1

            if indexed:
                report.indexed_per_date[day] = indexed
                report.total_indexed += indexed
                logger.info("%s: %d exchanges indexed", day, indexed)

            await asyncio.sleep(self._settings.inter_date_delay)

        report.final_corpus_size = await destination.count_exchanges()
        logger.info(
            "Indexing complete: %d exchanges, %d already migrated, %d errors",
            report.total_indexed,
            report.already_migrated,
            report.errors,
        )


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )
