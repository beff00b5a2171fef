"""
Backfill Error Types

Error taxonomy
--------------
- Source errors (legacy store unreachable, schema mismatch): fatal.
- Destination errors (storage cannot be opened or initialized): fatal.
- Parse errors, archive corruption, per-record embedding and write failures
  are recovered where they occur and never surface as exceptions here.

Only fatal conditions are modeled as exceptions; the CLI maps any of them to
a non-zero exit code.
"""

from __future__ import annotations


class BackfillError(RuntimeError):
    """Base error for fatal backfill failures."""


class SourceStoreError(BackfillError):
    """Raised when the legacy knowledge store cannot be read."""


class DestinationError(BackfillError):
    """Raised when the destination store cannot be opened or initialized."""
