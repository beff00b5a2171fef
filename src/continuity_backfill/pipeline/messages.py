"""
Builds archive messages for one date, chunking documents above the threshold.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from .chunker import chunk_text
from .dates import normalize_timestamp, timestamp_sort_key
from .models import AGENT_SENDER, ArchiveMessage, CanonicalDocument, Provenance


@dataclass
class MessageBatch:
    date: str
    messages: List[ArchiveMessage] = field(default_factory=list)
    chunked_documents: int = 0
    total_chunks: int = 0


def build_messages(
    date: str,
    documents: Iterable[CanonicalDocument],
    chunk_threshold: int,
    chunk_target: int,
) -> MessageBatch:
    """
    Turn the documents of one date into archive messages.

    Documents longer than ``chunk_threshold`` become one message per chunk,
    all sharing the document's timestamp. The result is stably sorted by
    timestamp so positions within the date are reproducible across runs.
    """
    batch = MessageBatch(date=date)

    for doc in documents:
        timestamp = normalize_timestamp(doc.timestamp, date)

        if len(doc.text) <= chunk_threshold:
            batch.messages.append(
                ArchiveMessage(
                    timestamp=timestamp,
                    sender=AGENT_SENDER,
                    text=doc.text,
                    provenance=Provenance.for_document(doc),
                )
            )
            continue

        chunks = chunk_text(doc.text, chunk_target)
        batch.chunked_documents += 1
        batch.total_chunks += len(chunks)
        for index, chunk in enumerate(chunks):
            batch.messages.append(
                ArchiveMessage(
                    timestamp=timestamp,
                    sender=AGENT_SENDER,
                    text=chunk,
                    provenance=Provenance.for_chunk(doc, index, len(chunks)),
                )
            )

    batch.messages.sort(key=lambda m: timestamp_sort_key(m.timestamp))
    return batch
