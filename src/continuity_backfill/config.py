"""
Backfill Configuration

All runtime settings for the knowledge -> continuity backfill are read from
environment variables prefixed with ``BACKFILL_`` (or a local ``.env`` file)
and may be overridden by CLI flags through ``get_settings(**overrides)``.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Set

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Legacy knowledge store (SQLite, opened read-only)
    legacy_db_path: Path = Path("knowledge.db")

    # Destination continuity store
    destination_database_url: str = "postgresql+asyncpg://localhost/continuity"
    archive_dir: Path = Path("data/archive")
    enable_fulltext: bool = True

    # Required: date assigned to records whose timestamp cannot be parsed
    fallback_date: str

    chunk_threshold: int = Field(default=4000, ge=1)
    chunk_target: int = Field(default=1500, ge=1)

    skip_memory_types: Set[str] = {"arc-agi-failure"}
    low_weight_memory_types: Set[str] = {"arc_agi_attempt"}

    # Sorts formational exchanges after regular traffic for the same date
    ordering_key_base: int = Field(default=10000, ge=0)
    inter_date_delay: float = Field(default=0.05, ge=0.0)

    embedding_api_key: SecretStr = SecretStr("")
    embedding_model: str = "text-embedding-3-small"
    embedding_base_url: str = "https://api.openai.com/v1/embeddings"
    embedding_timeout: float = 60.0

    model_config = SettingsConfigDict(
        env_prefix="BACKFILL_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("fallback_date")
    @classmethod
    def validate_fallback_date(cls, v: str) -> str:
        """
        The fallback must be a real calendar date in ``YYYY-MM-DD`` form.
        """
        v = v.strip()
        try:
            parsed = date.fromisoformat(v)
        except ValueError as exc:
            raise ValueError(
                f"fallback_date must be a YYYY-MM-DD calendar date, got {v!r}"
            ) from exc
        return parsed.isoformat()


def get_settings(**overrides) -> Settings:
    """
    Build settings from the environment, applying explicit overrides.

    Overrides whose value is ``None`` are ignored so CLI flags that were not
    given fall through to the environment.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    return Settings(**values)
