# carpool/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + payment verifier reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from carpool.database import get_db
from carpool.config import settings
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Payment verifier reachability (if configured)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "verifier": "not_configured",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if settings.VERIFIER_URL:
        try:
            resp = requests.head(settings.VERIFIER_URL, timeout=3)
            # Any HTTP answer means the service is up; 405 is normal for a POST-only endpoint
            result["verifier"] = "ok" if resp.status_code < 500 else f"http_{resp.status_code}"
        except requests.exceptions.ConnectionError:
            result["verifier"] = "unreachable"
            result["status"] = "degraded"
        except Exception as e:
            result["verifier"] = f"error: {str(e)}"

    return result
