"""
Backfill Data Models

Canonical shapes flowing through the pipeline:

    SourceRecord -> CanonicalDocument -> ArchiveMessage -> DateArchive

``SourceRecord`` and ``RecordMetadata`` are validated once at the legacy
boundary. Archive models serialize to the JSON layout shared with the regular
day-indexing path (camelCase keys, formational provenance under
``_formational``).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger("backfill.models")

AGENT_SENDER = "agent"
FORMATIONAL_SOURCE = "formational"

LegacyId = Union[int, str]


def _optional_text(v: Any) -> Optional[str]:
    if v is None or v == "" or v is False:
        return None
    return str(v)


# ---------------------------------------------------------------------
# Legacy Records
# ---------------------------------------------------------------------

class RecordMetadata(BaseModel):
    """
    Parsed form of the legacy metadata blob.

    The legacy store carries two type fields: ``type`` is a broad category
    and ``memoryType`` a granular one. The granular type wins for display
    and filtering.
    """

    type: str = "unknown"
    memory_type: Optional[str] = Field(default=None, alias="memoryType")
    timestamp: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, v: Any) -> str:
        return _optional_text(v) or "unknown"

    @field_validator("memory_type", "timestamp", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Optional[str]:
        return _optional_text(v)

    @property
    def display_type(self) -> str:
        return self.memory_type or self.type

    @classmethod
    def parse(cls, raw: Optional[str]) -> "RecordMetadata":
        """
        Parse a raw JSON blob, falling back to empty metadata on any error.
        """
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Unparseable metadata blob, using defaults")
            return cls()
        if not isinstance(data, dict):
            return cls()
        try:
            return cls.model_validate(data)
        except ValidationError:
            logger.debug("Metadata blob failed validation, using defaults")
            return cls()


class SourceRecord(BaseModel):
    """One row of the legacy ``documents`` table."""

    id: LegacyId
    document: Optional[str] = None
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)
    created_at: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("document", mode="before")
    @classmethod
    def _document_text(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bytes):
            return v.decode("utf-8", errors="replace")
        return str(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at_text(cls, v: Any) -> Optional[str]:
        return _optional_text(v)

    @property
    def timestamp(self) -> Optional[str]:
        """Metadata timestamp if present, else the row's ``created_at``."""
        return self.metadata.timestamp or self.created_at


class CanonicalDocument(BaseModel):
    """A legacy record that survived type filtering, with trimmed text."""

    legacy_id: LegacyId
    text: str = Field(..., min_length=1)
    display_type: str
    memory_type: Optional[str] = None
    is_low_weight_variant: bool = False
    timestamp: Optional[str] = None

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------
# Archive Models
# ---------------------------------------------------------------------

class Provenance(BaseModel):
    """
    Formational provenance attached to migrated archive messages.

    Use ``for_document`` / ``for_chunk`` rather than constructing directly so
    optional fields are only set where they apply.
    """

    source: str = FORMATIONAL_SOURCE
    original_type: str = Field(..., alias="originalType")
    legacy_id: LegacyId = Field(..., alias="knowledgeDbId")
    chunked: Optional[bool] = None
    chunk_index: Optional[int] = Field(default=None, alias="chunkIndex", ge=0)
    total_chunks: Optional[int] = Field(default=None, alias="totalChunks", ge=1)
    low_weight_variant: Optional[bool] = Field(default=None, alias="arcAgi")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    @model_validator(mode="after")
    def _check_chunk_position(self) -> "Provenance":
        if self.chunked:
            if self.chunk_index is None or self.total_chunks is None:
                raise ValueError("chunked provenance needs chunkIndex and totalChunks")
            if self.chunk_index >= self.total_chunks:
                raise ValueError("chunkIndex must be less than totalChunks")
        return self

    @classmethod
    def for_document(cls, doc: CanonicalDocument) -> "Provenance":
        fields: Dict[str, Any] = {
            "original_type": doc.display_type,
            "legacy_id": doc.legacy_id,
        }
        if doc.is_low_weight_variant:
            fields["low_weight_variant"] = True
        return cls(**fields)

    @classmethod
    def for_chunk(
        cls,
        doc: CanonicalDocument,
        chunk_index: int,
        total_chunks: int,
    ) -> "Provenance":
        fields: Dict[str, Any] = {
            "original_type": doc.display_type,
            "legacy_id": doc.legacy_id,
            "chunked": True,
            "chunk_index": chunk_index,
            "total_chunks": total_chunks,
        }
        if doc.is_low_weight_variant:
            fields["low_weight_variant"] = True
        return cls(**fields)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ArchiveMessage(BaseModel):
    """
    One message in a per-date archive file.

    Fields are lenient because archives are shared with the regular
    day-indexing path; unknown keys written by other producers are kept.
    """

    timestamp: Optional[str] = None
    sender: Optional[str] = None
    text: Optional[str] = None
    provenance: Optional[Provenance] = Field(default=None, alias="_formational")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
    )

    def to_json(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"provenance"})
        if self.provenance is not None:
            data["_formational"] = self.provenance.to_json()
        return data


# Top-level archive keys that are recomputed rather than carried over
_ARCHIVE_FIELDS = frozenset({"date", "messageCount", "message_count", "messages"})


def archive_entry_key(entry: Any) -> str:
    """
    Dedup key of one archive entry: ``timestamp_sender_<first 100 chars of text>``.

    Entries that are not JSON objects are keyed by their serialized form.
    """
    if isinstance(entry, ArchiveMessage):
        entry = entry.to_json()
    if not isinstance(entry, dict):
        return json.dumps(entry, sort_keys=True, default=str)
    text = entry.get("text")
    prefix = "" if text is None else str(text)[:100]
    return f"{entry.get('timestamp')}_{entry.get('sender')}_{prefix}"


class DateArchive(BaseModel):
    """
    The archive file for one calendar date.

    Messages are held as the JSON values read from disk (or ``ArchiveMessage``
    objects for newly added ones), so entries written by other producers are
    rewritten unchanged whatever their shape.
    """

    date: str
    message_count: int = Field(default=0, alias="messageCount")
    messages: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
    )

    @classmethod
    def from_json(cls, data: Any, date: str) -> Optional["DateArchive"]:
        """
        Build the archive for ``date`` from a decoded file body.

        Returns None when the body is not an object holding a ``messages``
        list. Individual messages are not validated.
        """
        if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
            return None
        fields = {k: v for k, v in data.items() if k not in _ARCHIVE_FIELDS}
        fields.update(date=date, messages=list(data["messages"]))
        return cls.model_validate(fields)

    def to_json(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"messages"})
        data["messageCount"] = len(self.messages)
        data["messages"] = [
            m.to_json() if isinstance(m, ArchiveMessage) else m
            for m in self.messages
        ]
        return data
