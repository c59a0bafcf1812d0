#!/usr/bin/env python3
"""
Recount every job's applications and repair stale `application_count` values.

Safe to run at any time and as often as you like (e.g. from cron):

    python backend/resync_counts.py
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from app.config import LOG_LEVEL
from app.database import SessionLocal, init_db
from app.services.count_sync import resync_application_counts


def main() -> int:
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
    init_db()

    db = SessionLocal()
    try:
        result = resync_application_counts(db)
    except Exception as e:
        print(f"✗ Resync failed: {e}")
        return 1
    finally:
        db.close()

    print(f"✓ Checked {result['checked']} jobs, updated {result['updated']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
