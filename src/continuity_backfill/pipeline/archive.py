"""
Per-Date Archive Merging

Archive files (``{archive_dir}/{date}.json``) are shared with the regular
day-indexing path, so every write here is a non-destructive merge:

- existing messages are never removed
- a message is appended only if its dedup key is not already present
- the merged list is re-sorted by timestamp and ``messageCount`` recomputed

Merging the same messages twice yields the same archive as merging once.
Existing entries are carried over as the JSON values found on disk, whatever
their shape. Only a file that cannot be decoded, or whose body is not an
object with a ``messages`` list, is logged as corrupt and treated as absent.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from .dates import timestamp_sort_key
from .models import ArchiveMessage, DateArchive, archive_entry_key

logger = logging.getLogger("backfill.archive")


@dataclass
class MergeResult:
    archive: DateArchive
    added: int


@dataclass
class ArchiveWriteResult:
    date: str
    existed: bool
    corrupt: bool
    added: int

    @property
    def written(self) -> bool:
        return self.added > 0


def _timestamp_of(entry: Any) -> Any:
    if isinstance(entry, ArchiveMessage):
        return entry.timestamp
    if isinstance(entry, dict):
        return entry.get("timestamp")
    return None


def merge_messages(
    date: str,
    archive: Optional[DateArchive],
    new_messages: Iterable[ArchiveMessage],
) -> MergeResult:
    """
    Merge ``new_messages`` into ``archive`` (or a fresh archive for ``date``).

    The input archive is not modified.
    """
    base = archive if archive is not None else DateArchive(date=date)

    merged = list(base.messages)
    keys = {archive_entry_key(entry) for entry in merged}
    added = 0

    for message in new_messages:
        key = archive_entry_key(message)
        if key in keys:
            continue
        merged.append(message)
        keys.add(key)
        added += 1

    merged.sort(key=lambda entry: timestamp_sort_key(_timestamp_of(entry)))

    result = base.model_copy(
        update={"messages": merged, "message_count": len(merged)}
    )
    return MergeResult(archive=result, added=added)


class ArchiveStore:
    """
    Reads and writes per-date archive JSON files.
    """

    def __init__(self, archive_dir: Path) -> None:
        self._archive_dir = Path(archive_dir)

    def path_for(self, date: str) -> Path:
        return self._archive_dir / f"{date}.json"

    def load(self, date: str) -> Optional[DateArchive]:
        """
        Load the archive for ``date``.

        Returns None when the file is missing or cannot be parsed.
        """
        path = self.path_for(date)
        if not path.exists():
            return None

        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            logger.warning(
                "Archive %s is unreadable (%s); starting it fresh",
                path,
                type(exc).__name__,
            )
            return None

        archive = DateArchive.from_json(data, date)
        if archive is None:
            logger.warning(
                "Archive %s is unreadable (no messages list); starting it fresh",
                path,
            )
        return archive

    def save(self, archive: DateArchive) -> Path:
        """
        Write an archive atomically (temp file, then rename).
        """
        path = self.path_for(archive.date)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_name(path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(archive.to_json(), f, ensure_ascii=False, indent=2)
        tmp_path.replace(path)
        return path

    def merge_and_save(
        self,
        date: str,
        messages: Iterable[ArchiveMessage],
    ) -> ArchiveWriteResult:
        """
        Merge messages into the date's archive, writing only on change.
        """
        existed = self.path_for(date).exists()
        current = self.load(date)
        corrupt = existed and current is None

        merged = merge_messages(date, current, messages)
        if merged.added > 0:
            self.save(merged.archive)

        return ArchiveWriteResult(
            date=date,
            existed=existed,
            corrupt=corrupt,
            added=merged.added,
        )
