import json
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from continuity_backfill.config import Settings
from continuity_backfill.db import (
    DestinationSystem,
    EMBEDDING_DIM,
    create_destination_engine,
    create_session_factory,
)
from continuity_backfill.embeddings.embedder import Embedder

FALLBACK_DATE = "2025-11-01"

LegacyRow = Tuple[object, Optional[str], Optional[str], Optional[object]]


def meta(memory_type=None, type_=None, **extra) -> str:
    """Build a legacy metadata JSON blob."""
    data = dict(extra)
    if memory_type is not None:
        data["memoryType"] = memory_type
    if type_ is not None:
        data["type"] = type_
    return json.dumps(data)


def create_legacy_db(path: Path, rows: Iterable[LegacyRow]) -> Path:
    """Create a legacy knowledge.db with a ``documents`` table."""
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            "CREATE TABLE documents ("
            "id TEXT PRIMARY KEY, document TEXT, metadata TEXT, created_at TEXT)"
        )
        conn.executemany(
            "INSERT INTO documents (id, document, metadata, created_at) VALUES (?, ?, ?, ?)",
            list(rows),
        )
        conn.commit()
    finally:
        conn.close()
    return path


async def count_rows(destination: DestinationSystem, model) -> int:
    factory = create_session_factory(destination.engine)
    async with factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar() or 0


@pytest.fixture
def settings(tmp_path):
    return Settings(
        fallback_date=FALLBACK_DATE,
        legacy_db_path=tmp_path / "knowledge.db",
        destination_database_url=f"sqlite+aiosqlite:///{(tmp_path / 'continuity.db').as_posix()}",
        archive_dir=tmp_path / "archive",
        inter_date_delay=0.0,
    )


@pytest.fixture
def mock_embedder():
    mock = AsyncMock(spec=Embedder)
    mock.embed_one.return_value = [0.1] * EMBEDDING_DIM
    return mock


@pytest.fixture
async def destination(settings, mock_embedder):
    engine = create_destination_engine(settings.destination_database_url)
    system = DestinationSystem(engine, mock_embedder, enable_fulltext=True)
    await system.initialize()
    yield system
    await system.close()
