"""
Database Package

Async SQLAlchemy engines, the destination continuity schema, and the
atomic exchange store.
"""

from .session import (
    create_destination_engine,
    create_readonly_sqlite_engine,
    create_session_factory,
)
from .models import Base, Exchange, ExchangeVector, ExchangeFullText, EMBEDDING_DIM
from .exchange_store import ExchangeRecord, ExchangeStore
from .destination import DestinationSystem

__all__ = [
    "create_destination_engine",
    "create_readonly_sqlite_engine",
    "create_session_factory",
    "Base",
    "Exchange",
    "ExchangeVector",
    "ExchangeFullText",
    "EMBEDDING_DIM",
    "ExchangeRecord",
    "ExchangeStore",
    "DestinationSystem",
]
