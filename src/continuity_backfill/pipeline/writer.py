"""
Multi-Index Writer

Turns archive messages into exchanges and writes them through the
``ExchangeStore`` fan-out protocol.

Identifiers are ``formational_{date}_{position}`` with a ``_c{chunkIndex}``
suffix for chunks, so re-running against an unchanged source regenerates the
same ids. Ordering keys start at ``ordering_key_base`` to sort after regular
traffic on the same date.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import numpy as np
from sqlalchemy.exc import IntegrityError

from ..db.exchange_store import ExchangeRecord, ExchangeStore
from .models import FORMATIONAL_SOURCE, ArchiveMessage

logger = logging.getLogger("backfill.writer")

ID_PREFIX = "formational"

EmbedFn = Callable[[str], Awaitable[Optional[List[float]]]]


class WriteOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED_EXISTING = "skipped_existing"
    ERROR = "error"


# ---------------------------------------------------------------------
# Record Construction
# ---------------------------------------------------------------------

def exchange_id(date: str, position: int, message: ArchiveMessage) -> str:
    meta = message.provenance
    suffix = f"_c{meta.chunk_index}" if meta is not None and meta.chunked else ""
    return f"{ID_PREFIX}_{date}_{position}{suffix}"


def format_combined(date: str, message: ArchiveMessage) -> str:
    """Embedding text, in the same layout the day indexer uses."""
    time = (message.timestamp or "")[11:16] or "12:00"
    return f"[{date} {time}]\nAgent: {message.text}"


def exchange_metadata(message: ArchiveMessage) -> Dict[str, Any]:
    meta = message.provenance
    data: Dict[str, Any] = {
        "timestamp": message.timestamp,
        "hasUser": False,
        "hasAgent": True,
        "source": meta.source if meta is not None else FORMATIONAL_SOURCE,
    }
    if meta is None:
        return data

    data["originalType"] = meta.original_type
    data["knowledgeDbId"] = meta.legacy_id
    if meta.chunked:
        data["chunked"] = True
        data["chunkIndex"] = meta.chunk_index
        data["totalChunks"] = meta.total_chunks
    if meta.low_weight_variant:
        data["arcAgi"] = True
    return data


def build_exchange_record(
    date: str,
    position: int,
    message: ArchiveMessage,
    ordering_key_base: int,
    fallback_created_at: str,
) -> ExchangeRecord:
    """
    Build the relational payload for the message at ``position`` in its date.
    """
    return ExchangeRecord(
        id=exchange_id(date, position, message),
        date=date,
        exchange_index=ordering_key_base + position,
        user_text="",
        agent_text=message.text or "",
        combined=format_combined(date, message),
        created_at=message.timestamp or fallback_created_at,
        metadata=exchange_metadata(message),
    )


# ---------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------

class MultiIndexWriter:
    """
    Embeds and writes exchanges; one failure never aborts the batch.
    """

    def __init__(
        self,
        store: ExchangeStore,
        embed: EmbedFn,
        fulltext_enabled: bool = True,
        replace_existing: bool = False,
    ) -> None:
        self._store = store
        self._embed = embed
        self._fulltext = fulltext_enabled
        self._replace = replace_existing

    async def write(self, record: ExchangeRecord) -> WriteOutcome:
        """
        Write one exchange.

        Returns
        -------
        WriteOutcome
            WRITTEN on success, SKIPPED_EXISTING when the relational row is
            already present, ERROR on embedding or unexpected write failures.
        """
        try:
            if not self._replace and await self._store.exists(record.id):
                return WriteOutcome.SKIPPED_EXISTING
        except Exception:
            logger.exception("%s: existence check failed", record.id)
            return WriteOutcome.ERROR

        vector = await self._embedding_for(record)
        if vector is None:
            return WriteOutcome.ERROR

        try:
            inserted = await self._store.write_exchange(
                record,
                vector,
                fulltext=self._fulltext,
                replace=self._replace,
            )
        except IntegrityError:
            logger.info("%s: already migrated (duplicate key)", record.id)
            return WriteOutcome.SKIPPED_EXISTING
        except Exception:
            logger.exception("%s: write failed", record.id)
            return WriteOutcome.ERROR

        if not inserted:
            logger.info("%s: already migrated", record.id)
            return WriteOutcome.SKIPPED_EXISTING
        return WriteOutcome.WRITTEN

    async def _embedding_for(self, record: ExchangeRecord) -> Optional[np.ndarray]:
        try:
            embedding = await self._embed(record.combined)
        except Exception as exc:
            logger.warning(
                "%s: embedding failed (%s: %s)", record.id, type(exc).__name__, exc
            )
            return None

        if embedding is None:
            logger.warning("%s: embedding returned nothing", record.id)
            return None

        try:
            vector = np.asarray(embedding, dtype="float32")
        except (TypeError, ValueError):
            vector = np.empty(0, dtype="float32")
        if vector.ndim != 1 or vector.size == 0 or not np.all(np.isfinite(vector)):
            logger.warning("%s: embedding is not a finite 1-D vector", record.id)
            return None
        return vector
