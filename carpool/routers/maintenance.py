# carpool/routers/maintenance.py
"""
Maintenance triggers for an external scheduler (cron, k8s CronJob, ...).
Both are idempotent: re-running finds nothing new to do.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from carpool.database import get_db
from carpool.services.expiry_sweeper import sweep_expired
from carpool.services.maintenance_scheduler import run_maintenance

router = APIRouter()


@router.post("/maintenance/sweep", summary="Expire stale temporary holds")
def sweep(db: Session = Depends(get_db)):
    return {"holds_expired": sweep_expired(db)}


@router.post("/maintenance/run", summary="Run every maintenance job once")
def run_all(db: Session = Depends(get_db)):
    return run_maintenance(db)
