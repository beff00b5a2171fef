"""
Paragraph- and sentence-aware chunking for oversized documents.

Paragraphs (blank-line separated) are packed into chunks up to a target
length. Only when that yields one chunk more than twice the target (the
document has no paragraph breaks) are sentences packed instead. A single
paragraph or sentence longer than the target becomes its own oversized chunk
rather than being cut mid-sentence.
"""

from __future__ import annotations

import re
from typing import Iterable, List

_PARAGRAPH_BREAK = re.compile(r"\n\n+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def _pack(parts: Iterable[str], target_length: int, joiner: str) -> List[str]:
    chunks: List[str] = []
    current = ""

    for part in parts:
        if current and len(current) + len(part) > target_length:
            chunks.append(current.strip())
            current = part
        else:
            current = f"{current}{joiner}{part}" if current else part

    if current.strip():
        chunks.append(current.strip())

    return [chunk for chunk in chunks if chunk]


def split_sentences(text: str, target_length: int) -> List[str]:
    """Pack sentences (terminator followed by whitespace) into chunks."""
    return _pack(_SENTENCE_BREAK.split(text), target_length, " ")


def chunk_text(text: str, target_length: int) -> List[str]:
    """
    Split ``text`` into trimmed, non-empty chunks in document order.

    Joining the chunks with whitespace reproduces the input modulo
    whitespace normalization. Whitespace-only input yields no chunks.
    """
    if target_length <= 0:
        raise ValueError("target_length must be positive")
    if not text or not text.strip():
        return []

    chunks = _pack(_PARAGRAPH_BREAK.split(text), target_length, "\n\n")

    if len(chunks) == 1 and len(chunks[0]) > target_length * 2:
        return split_sentences(chunks[0], target_length)

    return chunks or [text.strip()]
