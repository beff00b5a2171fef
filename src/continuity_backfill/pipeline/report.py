"""
Backfill report: counts accumulated by each stage and their console rendering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, List, Optional, Tuple


@dataclass
class BackfillReport:
    dry_run: bool = False

    total_read: int = 0
    skipped_by_filter: int = 0
    skipped_empty: int = 0
    duplicates: int = 0
    documents: int = 0
    low_weight_documents: int = 0
    type_counts: List[Tuple[str, int]] = field(default_factory=list)

    first_date: Optional[str] = None
    last_date: Optional[str] = None
    unique_dates: int = 0

    chunked_documents: int = 0
    total_chunks: int = 0
    archive_messages: int = 0

    archive_files_created: int = 0
    archive_files_updated: int = 0
    archive_files_recovered: int = 0

    indexed_per_date: Dict[str, int] = field(default_factory=dict)
    total_indexed: int = 0
    already_migrated: int = 0
    errors: int = 0
    final_corpus_size: Optional[int] = None


def render_report(
    report: BackfillReport,
    skip_types: AbstractSet[str] = frozenset(),
    low_weight_types: AbstractSet[str] = frozenset(),
) -> str:
    """
    Human-readable summary separating skipped-by-design from errored counts.
    """
    lines: List[str] = []
    add = lines.append

    add("")
    add("=== Knowledge -> Continuity Backfill ===")
    add(f"Mode: {'DRY RUN (no writes)' if report.dry_run else 'LIVE'}")
    add("")
    add(f"Source: {report.total_read} total entries")
    skipped_label = ", ".join(sorted(skip_types)) or "none"
    add(f"Filtered: {report.skipped_by_filter} entries skipped (memoryTypes: {skipped_label})")
    add(f"Empty: {report.skipped_empty} entries with no text skipped")
    add(f"Low-weight variants included: {report.low_weight_documents}")
    add(f"Deduped: {report.duplicates} exact duplicates removed")
    add(f"Final: {report.documents} entries to backfill")
    add("")

    add("Type breakdown (memoryType):")
    for type_name, count in report.type_counts:
        marker = " [low weight]" if type_name in low_weight_types else ""
        add(f"  {type_name}: {count}{marker}")
    add("")

    if report.unique_dates:
        add(f"Date range: {report.first_date} -> {report.last_date}")
    add(f"Unique dates: {report.unique_dates}")
    add(
        f"Chunking: {report.chunked_documents} long documents split into "
        f"{report.total_chunks} chunks"
    )
    add(f"Total archive messages: {report.archive_messages}")
    add("")

    if report.dry_run:
        add("=== DRY RUN COMPLETE: no files written ===")
        add(f"Would write {report.unique_dates} archive files")
        add(f"Would index {report.archive_messages} exchanges")
        return "\n".join(lines)

    add("Archive files:")
    add(f"  New: {report.archive_files_created}")
    add(f"  Updated: {report.archive_files_updated}")
    if report.archive_files_recovered:
        add(f"  Recovered from corruption: {report.archive_files_recovered}")
    add("")

    add("Indexed per date:")
    for day, count in sorted(report.indexed_per_date.items()):
        add(f"  {day}: {count} exchanges indexed")
    add("")

    add("=== BACKFILL COMPLETE ===")
    add(f"Indexed: {report.total_indexed} exchanges")
    add(f"Already migrated (skipped): {report.already_migrated}")
    add(f"Errors: {report.errors}")
    if report.final_corpus_size is not None:
        add(f"Total exchanges in destination: {report.final_corpus_size}")
    return "\n".join(lines)
