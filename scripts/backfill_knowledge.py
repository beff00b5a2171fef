"""
Backfill formational records from knowledge.db into the continuity store.

Usage:
    python scripts/backfill_knowledge.py --dry-run    # Preview without writing
    python scripts/backfill_knowledge.py              # Execute backfill

The continuity gateway must NOT be running (exclusive DB access).
"""

import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from continuity_backfill.main import main

if __name__ == "__main__":
    sys.exit(main())
