"""
SQLAlchemy Models

Destination continuity schema. One logical exchange is stored in three
tables sharing the same ``id``:

- ``exchanges``     relational row (source of truth for "already migrated")
- ``vec_exchanges`` pgvector embedding
- ``fts_exchanges`` full-text entry (optional)

Types degrade to portable variants on SQLite so the schema can be created
against a local file database.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, Column, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from pgvector.sqlalchemy import Vector

# text-embedding-3-small
EMBEDDING_DIM = 1536


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Relational Exchange Row
# ---------------------------------------------------------------------

class Exchange(Base):
    """
    One indexed exchange (a user/agent turn, or a migrated formational record).
    """
    __tablename__ = "exchanges"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    exchange_index: Mapped[int] = mapped_column(Integer, nullable=False)
    user_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    agent_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    combined: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )
    created_at: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        Index("idx_exchanges_date", "date", "exchange_index"),
    )


# ---------------------------------------------------------------------
# Vector Index
# ---------------------------------------------------------------------

class ExchangeVector(Base):
    """
    Embedding for an exchange, searched with pgvector cosine distance.
    """
    __tablename__ = "vec_exchanges"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    embedding = Column(Vector(EMBEDDING_DIM), nullable=False)


# ---------------------------------------------------------------------
# Full-Text Index
# ---------------------------------------------------------------------

class ExchangeFullText(Base):
    """
    Lexical search entry for an exchange.
    """
    __tablename__ = "fts_exchanges"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    agent_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    document = Column(TSVECTOR().with_variant(Text(), "sqlite"), nullable=True)

    __table_args__ = (
        Index("idx_fts_exchanges_document", "document", postgresql_using="gin"),
    )


CORE_TABLES = [Exchange.__table__, ExchangeVector.__table__]
FULLTEXT_TABLE = ExchangeFullText.__table__
