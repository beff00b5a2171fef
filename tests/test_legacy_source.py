"""
Legacy knowledge store reads.
"""

import sqlite3

import pytest

from continuity_backfill.core.errors import SourceStoreError
from continuity_backfill.legacy.source import LegacyStore

from conftest import create_legacy_db, meta


async def test_reads_rows_in_scan_order(tmp_path):
    path = create_legacy_db(
        tmp_path / "knowledge.db",
        [
            ("b", "second inserted first", meta("reflection", "personal-memory"), "2025-09-01 10:00:00"),
            ("a", "then this", None, None),
        ],
    )

    records = await LegacyStore(path).fetch_all()

    assert [r.id for r in records] == ["b", "a"]
    assert records[0].metadata.display_type == "reflection"
    assert records[0].metadata.type == "personal-memory"
    assert records[0].timestamp == "2025-09-01 10:00:00"
    assert records[1].metadata.display_type == "unknown"
    assert records[1].timestamp is None


async def test_limit(tmp_path):
    path = create_legacy_db(
        tmp_path / "knowledge.db",
        [(str(i), f"doc {i}", None, None) for i in range(5)],
    )
    records = await LegacyStore(path).fetch_all(limit=3)
    assert [r.document for r in records] == ["doc 0", "doc 1", "doc 2"]


async def test_integer_ids_and_malformed_metadata(tmp_path):
    path = tmp_path / "knowledge.db"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE documents (id INTEGER PRIMARY KEY, document TEXT, metadata TEXT, created_at TEXT)"
    )
    conn.execute("INSERT INTO documents VALUES (12, 'text', '{not json', NULL)")
    conn.commit()
    conn.close()

    (record,) = await LegacyStore(path).fetch_all()

    assert record.id == 12
    assert record.metadata.display_type == "unknown"


async def test_source_file_is_not_modified(tmp_path):
    path = create_legacy_db(tmp_path / "knowledge.db", [("1", "doc", meta("reflection"), None)])
    before = path.read_bytes()

    await LegacyStore(path).fetch_all()

    assert path.read_bytes() == before


async def test_missing_file_raises(tmp_path):
    with pytest.raises(SourceStoreError, match="not found"):
        await LegacyStore(tmp_path / "absent.db").fetch_all()


async def test_missing_table_raises(tmp_path):
    path = tmp_path / "knowledge.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE notes (body TEXT)")
    conn.commit()
    conn.close()

    with pytest.raises(SourceStoreError):
        await LegacyStore(path).fetch_all()
