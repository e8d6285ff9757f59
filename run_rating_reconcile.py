"""
Artist Rating Reconciliation Runner
Rebuilds every artist's rating counters from the review table.
Run on a schedule as a separate process: python run_rating_reconcile.py
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from app import models  # noqa: F401
from app.database import SessionLocal
from app.domain.reviews.service import reconcile_artist_ratings
from app.shared.errors import StoreError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def main() -> int:
    logger.info("🚀 Starting artist rating reconciliation...")
    db = SessionLocal()
    try:
        corrected = reconcile_artist_ratings(db)
    except StoreError as e:
        logger.error(f"❌ Rating reconciliation failed: {e.message}")
        return 1
    finally:
        db.close()
    logger.info(f"👋 Done, {corrected} artists corrected")
    return 0


if __name__ == "__main__":
    sys.exit(main())
