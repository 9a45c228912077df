# carpool/services/arrival_service.py
"""
Arrival tracker — boarding / no-show marks for confirmed reservations.
One row per reservation: re-marking overwrites, so repeated calls with the
same value leave the same observable state.
"""

from datetime import datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from carpool.models.arrival import Arrival
from carpool.models.car import Car
from carpool.models.reservation import Reservation, ReservationStatus
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def _apply(arrival: Arrival, arrived: bool, actor_id: str, driver_id, now: datetime):
    arrival.arrived = arrived
    arrival.actor_id = actor_id
    arrival.driver_id = driver_id
    arrival.updated_at = now
    if arrived:
        # keep the first boarding time when the mark is repeated
        arrival.arrival_time = arrival.arrival_time or now
    else:
        arrival.arrival_time = None


def mark_arrival(db: Session, reservation_id: int, arrived: bool, actor_id: str) -> OperationResult:
    reservation = db.get(Reservation, reservation_id)
    if not reservation:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Reservation {reservation_id} not found")
    status = reservation.status
    if status != ReservationStatus.CONFIRMED.value:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_CONFIRMED,
                                    f"Reservation {reservation_id} is {status}, not confirmed")

    car = db.get(Car, reservation.car_id)
    driver_id = car.driver_id if car else None
    now = datetime.utcnow()

    arrival = db.query(Arrival).filter(Arrival.reservation_id == reservation_id).first()
    if not arrival:
        arrival = Arrival(reservation_id=reservation_id, created_at=now)
        db.add(arrival)
    _apply(arrival, arrived, actor_id, driver_id, now)
    log_action(db, actor_id, "mark_arrival", {"reservation_id": reservation_id, "arrived": arrived})

    try:
        db.commit()
    except IntegrityError:
        # Another marker inserted the row first; overwrite theirs
        db.rollback()
        arrival = db.query(Arrival).filter(Arrival.reservation_id == reservation_id).one()
        _apply(arrival, arrived, actor_id, driver_id, now)
        log_action(db, actor_id, "mark_arrival", {"reservation_id": reservation_id, "arrived": arrived})
        db.commit()

    logger.info(f"[ARRIVAL] Reservation {reservation_id}: arrived={arrived} (by {actor_id})")
    return OperationResult.ok("Arrival recorded", reservation_id=reservation_id, arrived=arrived)
