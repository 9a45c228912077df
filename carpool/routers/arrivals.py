# carpool/routers/arrivals.py
"""Driver boarding marks."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from carpool.database import get_db
from carpool.schemas.reservation import ArrivalUpdate
from carpool.services.arrival_service import mark_arrival
from carpool.routers.dependencies import get_actor_id, raise_for_failure

router = APIRouter()


@router.put("/reservations/{reservation_id}/arrival", summary="Mark passenger arrived / not arrived")
def put_arrival(reservation_id: int, body: ArrivalUpdate, db: Session = Depends(get_db),
                actor_id: str = Depends(get_actor_id)):
    raise_for_failure(mark_arrival(db, reservation_id, body.arrived, actor_id))
    return {"reservation_id": reservation_id, "arrived": body.arrived, "status": "ok"}
