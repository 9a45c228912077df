# carpool/services/queue_service.py
"""
Queue projection — the ordered list of active reservations for a car.

Pure read, recomputed from the ledger (+ arrivals) on every call. Each viewer
role gets its own shape: passengers see display names, drivers see phone
numbers and arrival state. Neither sees the other's contact field.
"""

from typing import Union
from sqlalchemy.orm import Session
from carpool.models.arrival import Arrival
from carpool.models.car import Car
from carpool.models.passenger import Passenger
from carpool.models.reservation import Reservation, ACTIVE_STATUSES
from carpool.schemas.queue import ViewerRole, PassengerQueueEntry, DriverQueueEntry, SeatSummaryOut
from carpool.services.reservation_service import count_active
from carpool.utils.logger import get_logger

logger = get_logger(__name__)

QueueEntry = Union[PassengerQueueEntry, DriverQueueEntry]


def queue_for_car(db: Session, car_id: int, viewer_role: ViewerRole) -> list[QueueEntry]:
    viewer_role = ViewerRole(viewer_role)
    q = (
        db.query(Reservation, Passenger, Arrival)
        .outerjoin(Passenger, Passenger.id == Reservation.passenger_id)
        .outerjoin(Arrival, Arrival.reservation_id == Reservation.id)
        .filter(Reservation.car_id == car_id, Reservation.status.in_(ACTIVE_STATUSES))
        .order_by(Reservation.order_number.asc())
    )

    entries: list[QueueEntry] = []
    for reservation, passenger, arrival in q.all():
        if viewer_role is ViewerRole.DRIVER:
            entries.append(DriverQueueEntry(
                reservation_id=reservation.id,
                order_number=reservation.order_number,
                status=reservation.status,
                passenger_phone=passenger.phone if passenger else None,
                arrived=bool(arrival and arrival.arrived),
                arrival_time=arrival.arrival_time if arrival else None,
            ))
        else:
            entries.append(PassengerQueueEntry(
                order_number=reservation.order_number,
                status=reservation.status,
                passenger_name=passenger.name if passenger else None,
            ))

    logger.debug(f"[QUEUE] Car {car_id} ({viewer_role.value} view): {len(entries)} active")
    return entries


def seat_summary(db: Session, car: Car) -> SeatSummaryOut:
    active = count_active(db, car.id)
    return SeatSummaryOut(car_id=car.id, capacity=car.capacity, active=active,
                          available=max(0, car.capacity - active))
