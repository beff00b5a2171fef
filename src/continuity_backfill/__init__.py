"""Knowledge store -> continuity store backfill."""

__version__ = "1.0.0"
