"""
Exchange Store

Atomic fan-out writes of one exchange across the relational, vector and
full-text tables.

Write protocol (one transaction per exchange)
---------------------------------------------
1. delete any existing sub-index entries (and, on replace, the relational row)
2. insert the vector entry
3. if full-text is enabled: insert the full-text entry
4. insert-if-absent the relational row

The full-text table is never touched when full-text indexing is off; it may
not exist at all. The vector and full-text tables are replaced with
delete-then-insert rather than upserted so a stale entry is always removed
first. The relational row is the marker for "already migrated" and is never
overwritten in place. Any failure rolls the whole transaction back, so no
sub-index is ever visible without the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import Exchange, ExchangeFullText, ExchangeVector

FULLTEXT_LANGUAGE = "english"


@dataclass
class ExchangeRecord:
    """Relational payload of one exchange."""

    id: str
    date: str
    exchange_index: int
    user_text: str
    agent_text: str
    combined: str
    created_at: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class ExchangeStore:
    """
    Destination store access, one session and transaction per exchange.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dialect_name: str,
    ) -> None:
        """
        Parameters
        ----------
        session_factory : async_sessionmaker[AsyncSession]
            Factory bound to the destination engine.
        dialect_name : str
            ``postgresql`` or ``sqlite``; selects insert-if-absent syntax and
            full-text document encoding.
        """
        self._session_factory = session_factory
        self._dialect = dialect_name

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def exists(self, exchange_id: str) -> bool:
        """
        True if the relational row for ``exchange_id`` exists.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(Exchange.id).where(Exchange.id == exchange_id)
            )
            return result.scalar_one_or_none() is not None

    async def count_exchanges(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(Exchange))
            return result.scalar() or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_exchange(
        self,
        record: ExchangeRecord,
        embedding: Sequence[float],
        fulltext: bool = True,
        replace: bool = False,
    ) -> bool:
        """
        Write one exchange to every sub-index in a single transaction.

        Parameters
        ----------
        record : ExchangeRecord
            Relational payload.
        embedding : Sequence[float]
            Vector for the vector index.
        fulltext : bool
            Whether the full-text table is in use.
        replace : bool
            Delete an existing relational row first so the record is fully
            rewritten.

        Returns
        -------
        bool
            True if the relational row was inserted, False if it already
            existed (the row was left untouched).
        """
        async with self._session_factory() as session:
            async with session.begin():
                await self._delete_entries(
                    session,
                    record.id,
                    fulltext=fulltext,
                    relational=replace,
                )

                await session.execute(
                    insert(ExchangeVector.__table__).values(
                        id=record.id,
                        embedding=embedding,
                    )
                )

                if fulltext:
                    await session.execute(
                        insert(ExchangeFullText.__table__).values(
                            id=record.id,
                            user_text=record.user_text,
                            agent_text=record.agent_text,
                            document=self._fulltext_document(record),
                        )
                    )

                result = await session.execute(
                    self._insert_if_absent().values(
                        id=record.id,
                        date=record.date,
                        exchange_index=record.exchange_index,
                        user_text=record.user_text,
                        agent_text=record.agent_text,
                        combined=record.combined,
                        metadata=record.metadata,
                        created_at=record.created_at,
                    )
                )
                return result.rowcount > 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _delete_entries(
        self,
        session: AsyncSession,
        exchange_id: str,
        fulltext: bool,
        relational: bool,
    ) -> None:
        """
        Delete the sub-index entries for ``exchange_id``.

        The full-text table is only touched when it is in use; the relational
        row only when the exchange is being fully replaced.
        """
        if relational:
            await session.execute(delete(Exchange).where(Exchange.id == exchange_id))
        await session.execute(
            delete(ExchangeVector).where(ExchangeVector.id == exchange_id)
        )
        if fulltext:
            await session.execute(
                delete(ExchangeFullText).where(ExchangeFullText.id == exchange_id)
            )

    def _insert_if_absent(self):
        table = Exchange.__table__
        if self._dialect == "postgresql":
            return pg_insert(table).on_conflict_do_nothing(index_elements=["id"])
        if self._dialect == "sqlite":
            return sqlite_insert(table).on_conflict_do_nothing(index_elements=["id"])
        raise ValueError(f"Unsupported destination dialect: {self._dialect}")

    def _fulltext_document(self, record: ExchangeRecord):
        text = " ".join(part for part in (record.user_text, record.agent_text) if part)
        if self._dialect == "postgresql":
            return func.to_tsvector(FULLTEXT_LANGUAGE, text)
        return text
