# carpool/services/maintenance_scheduler.py
"""
Periodic maintenance jobs:
  1. expire temporary holds past their deadline
  2. drop unconsumed votes for travel dates that have passed
  3. score anomalies

run_maintenance() is one pass and is what an external cron hits via
POST /maintenance/run. maintenance_loop() runs the same pass in-process every
SWEEP_INTERVAL_SECONDS when SWEEPER_ENABLED is set.
"""

import asyncio
from sqlalchemy.orm import Session
from carpool.config import settings
from carpool.database import SessionLocal
from carpool.services.expiry_sweeper import sweep_expired
from carpool.services.voting_service import expire_stale_votes
from carpool.services.anomaly_service import detect_anomalies
from carpool.utils.logger import get_logger

logger = get_logger(__name__)

# Retry delay after a failed pass (doubles on each failure, max 10 min)
_MIN_BACKOFF = 5
_MAX_BACKOFF = 600


def run_maintenance(db: Session) -> dict:
    holds = sweep_expired(db)
    votes = expire_stale_votes(db)
    anomalies = detect_anomalies(db)
    logger.info(f"[MAINTENANCE] holds_expired={holds} votes_cleaned={votes} "
                f"anomalies_detected={anomalies}")
    return {"holds_expired": holds, "votes_cleaned": votes, "anomalies_detected": anomalies}


def _run_once() -> dict:
    # Fresh DB session per pass
    db = SessionLocal()
    try:
        return run_maintenance(db)
    finally:
        db.close()


async def maintenance_loop(interval: int = None):
    """Run maintenance forever. Started once at backend startup."""
    interval = interval or settings.SWEEP_INTERVAL_SECONDS
    backoff = _MIN_BACKOFF
    logger.info(f"🧹 Maintenance loop started (every {interval}s)")

    while True:
        try:
            await asyncio.to_thread(_run_once)
            backoff = _MIN_BACKOFF
            await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("🛑 Maintenance loop stopped")
            raise
        except Exception as e:
            logger.error(f"❌ Maintenance pass failed: {e}. Retry in {backoff}s", exc_info=True)
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, _MAX_BACKOFF)
