"""
Legacy Knowledge Store

Sequential, read-only scan of the legacy SQLite ``documents`` table. The
store is never written to. Any failure to open or query it is fatal for the
run and surfaces as ``SourceStoreError``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import SourceStoreError
from ..db.session import create_readonly_sqlite_engine
from ..pipeline.models import RecordMetadata, SourceRecord

logger = logging.getLogger("backfill.legacy")

SCAN_QUERY = "SELECT id, document, metadata, created_at FROM documents ORDER BY rowid"


class LegacyStore:
    """
    Read-only view over the legacy knowledge database.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def fetch_all(self, limit: Optional[int] = None) -> List[SourceRecord]:
        """
        Read every document row in scan order.

        Parameters
        ----------
        limit : Optional[int]
            Only read the first ``limit`` rows.

        Raises
        ------
        SourceStoreError
            If the database is missing, unreadable, or lacks the expected
            columns.
        """
        if not self._path.is_file():
            raise SourceStoreError(f"Legacy store not found: {self._path}")

        query = SCAN_QUERY
        params = {}
        if limit is not None:
            query += " LIMIT :limit"
            params["limit"] = limit

        engine = create_readonly_sqlite_engine(self._path)
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text(query), params)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise SourceStoreError(
                f"Failed to read legacy store {self._path}: {exc}"
            ) from exc
        finally:
            await engine.dispose()

        records = [
            SourceRecord(
                id=row["id"],
                document=row["document"],
                metadata=RecordMetadata.parse(row["metadata"]),
                created_at=row["created_at"],
            )
            for row in (r._mapping for r in rows)
        ]
        logger.info("Read %d entries from %s", len(records), self._path)
        return records
