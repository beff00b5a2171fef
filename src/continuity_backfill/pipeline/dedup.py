"""
Type filtering and exact-text deduplication.

Both stages are single-pass and return explicit result objects carrying the
surviving documents plus the counts the final report needs.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, List, Tuple

from .models import CanonicalDocument, SourceRecord


@dataclass
class FilterResult:
    documents: List[CanonicalDocument] = field(default_factory=list)
    skipped_by_filter: int = 0
    skipped_empty: int = 0


@dataclass
class DedupResult:
    documents: List[CanonicalDocument] = field(default_factory=list)
    duplicate_count: int = 0


def canonicalize(
    records: Iterable[SourceRecord],
    skip_types: AbstractSet[str],
    low_weight_types: AbstractSet[str],
) -> FilterResult:
    """
    Drop excluded memory types and empty documents; trim the rest.

    Filtering is done on the granular memory type. Records in
    ``low_weight_types`` are kept but flagged for discounted ranking.
    """
    result = FilterResult()

    for record in records:
        memory_type = record.metadata.memory_type
        if memory_type in skip_types:
            result.skipped_by_filter += 1
            continue

        text = (record.document or "").strip()
        if not text:
            result.skipped_empty += 1
            continue

        result.documents.append(
            CanonicalDocument(
                legacy_id=record.id,
                text=text,
                display_type=record.metadata.display_type,
                memory_type=memory_type,
                is_low_weight_variant=memory_type in low_weight_types,
                timestamp=record.timestamp,
            )
        )

    return result


def deduplicate(documents: Iterable[CanonicalDocument]) -> DedupResult:
    """
    Keep the first document for each exact trimmed text.

    The key is the full text: near-identical documents may carry different
    type tags and must not be merged.
    """
    result = DedupResult()
    seen = set()

    for doc in documents:
        if doc.text in seen:
            result.duplicate_count += 1
            continue
        seen.add(doc.text)
        result.documents.append(doc)

    return result


def type_breakdown(documents: Iterable[CanonicalDocument]) -> List[Tuple[str, int]]:
    """Display-type counts, most common first."""
    counts = Counter(doc.display_type for doc in documents)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))
