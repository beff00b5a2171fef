"""
Database Session Management

Async SQLAlchemy engines and session factories for the destination store
(PostgreSQL in production, SQLite for local runs) and the read-only legacy
SQLite store.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_destination_engine(database_url: str) -> AsyncEngine:
    """
    Create the engine for the destination continuity store.
    """
    if database_url.startswith("postgresql"):
        return create_async_engine(
            database_url,
            echo=False,  # Set True for SQL debugging
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def create_readonly_sqlite_engine(path: Path) -> AsyncEngine:
    """
    Open a SQLite file read-only through a ``file:`` URI.
    """
    resolved = Path(path).resolve()
    return create_async_engine(
        f"sqlite+aiosqlite:///file:{resolved.as_posix()}?mode=ro&uri=true",
        echo=False,
    )
