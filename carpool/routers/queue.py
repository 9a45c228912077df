# carpool/routers/queue.py
"""Role-specific boarding queue for a car. Clients re-pull on every change."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Union
from carpool.database import get_db
from carpool.models.car import Car
from carpool.schemas.queue import ViewerRole, PassengerQueueEntry, DriverQueueEntry
from carpool.services.queue_service import queue_for_car

router = APIRouter()


@router.get("/cars/{car_id}/queue", response_model=list[Union[DriverQueueEntry, PassengerQueueEntry]],
            summary="Ordered queue of active reservations")
def get_queue(car_id: int, viewer_role: ViewerRole = ViewerRole.PASSENGER, db: Session = Depends(get_db)):
    if not db.get(Car, car_id):
        raise HTTPException(status_code=404, detail=f"Car {car_id} not found")
    return queue_for_car(db, car_id, viewer_role)
