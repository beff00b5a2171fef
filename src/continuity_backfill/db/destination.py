"""
Destination System

Opens the continuity store and exposes what the backfill needs from it: the
exchange store, the embedding function, whether full-text indexing is
available, and the final corpus size. The backfill never goes through the
regular day-indexing entry point for writes; its identifiers would collide
with regular traffic.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from ..config import Settings
from ..core.errors import DestinationError
from ..embeddings.embedder import Embedder
from .exchange_store import ExchangeStore
from .models import Base, CORE_TABLES, FULLTEXT_TABLE
from .session import create_destination_engine, create_session_factory

logger = logging.getLogger("backfill.destination")


class DestinationSystem:
    """
    Handle on the destination continuity store for the duration of a run.

    The design assumes exclusive write access: no regular-traffic writer
    may run against the same database during a backfill.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        embedder: Embedder,
        enable_fulltext: bool = True,
    ) -> None:
        self._engine = engine
        self._embedder = embedder
        self._want_fulltext = enable_fulltext
        self._fulltext_available = False
        self.store = ExchangeStore(
            create_session_factory(engine),
            dialect_name=engine.dialect.name,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DestinationSystem":
        embedder = Embedder(
            api_key=settings.embedding_api_key.get_secret_value(),
            model=settings.embedding_model,
            base_url=settings.embedding_base_url,
            timeout=settings.embedding_timeout,
        )
        return cls(
            create_destination_engine(settings.destination_database_url),
            embedder,
            enable_fulltext=settings.enable_fulltext,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def fulltext_enabled(self) -> bool:
        return self._fulltext_available

    async def initialize(self) -> None:
        """
        Ensure the schema exists and detect the full-text table.

        Raises
        ------
        DestinationError
            If the database cannot be reached or the schema cannot be created.
        """
        try:
            async with self._engine.begin() as conn:
                if self._engine.dialect.name == "postgresql":
                    await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

                tables = list(CORE_TABLES)
                if self._want_fulltext:
                    tables.append(FULLTEXT_TABLE)
                await conn.run_sync(Base.metadata.create_all, tables=tables)

                has_fts = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).has_table(FULLTEXT_TABLE.name)
                )
        except SQLAlchemyError as exc:
            raise DestinationError(
                f"Failed to initialize destination store: {type(exc).__name__}: {exc}"
            ) from exc

        self._fulltext_available = self._want_fulltext and has_fts
        logger.info(
            "Destination initialized (dialect=%s, fulltext=%s)",
            self._engine.dialect.name,
            self._fulltext_available,
        )

    async def embed(self, text: str) -> Optional[List[float]]:
        return await self._embedder.embed_one(text)

    async def count_exchanges(self) -> int:
        return await self.store.count_exchanges()

    async def close(self) -> None:
        await self._embedder.aclose()
        await self._engine.dispose()
