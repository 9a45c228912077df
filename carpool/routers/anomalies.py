# carpool/routers/anomalies.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from carpool.database import get_db
from carpool.schemas.anomaly import AnomalyOut
from carpool.services.anomaly_service import list_anomalies, review_anomaly
from carpool.routers.dependencies import get_actor_id, raise_for_failure

router = APIRouter()


@router.get("/anomalies", response_model=list[AnomalyOut], summary="Fraud signals — filterable by type")
def get_anomalies(kind: Optional[str] = None, unreviewed: bool = False, limit: int = 50,
                  db: Session = Depends(get_db)):
    return list_anomalies(db, kind=kind, unreviewed=unreviewed, limit=limit)


@router.post("/anomalies/{anomaly_id}/review", summary="Mark an anomaly as reviewed")
def mark_reviewed(anomaly_id: int, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    raise_for_failure(review_anomaly(db, anomaly_id, actor_id))
    return {"anomaly_id": anomaly_id, "status": "reviewed"}
