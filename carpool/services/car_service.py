# carpool/services/car_service.py
"""
Car and passenger-profile administration.
Capacity changes take the same per-car lock as reserve_seat, so they cannot
race an allocation.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from carpool.config import settings
from carpool.models.car import Car
from carpool.models.passenger import Passenger
from carpool.models.reservation import Reservation, ACTIVE_STATUSES
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode
from carpool.services.seat_allocation_service import lock_car
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def create_car(db: Session, title: str, capacity: Optional[int] = None, route: Optional[str] = None,
               driver_id: Optional[str] = None, owner_id: Optional[str] = None,
               actor_id: Optional[str] = None) -> Car:
    car = Car(title=title, capacity=capacity or settings.DEFAULT_CAR_CAPACITY, route=route,
              driver_id=driver_id, owner_id=owner_id, created_at=datetime.utcnow())
    db.add(car)
    db.flush()
    log_action(db, actor_id, "create_car", {"car_id": car.id, "capacity": car.capacity, "route": route})
    db.commit()
    db.refresh(car)
    logger.info(f"[CARS] Created car {car.id} '{title}' capacity={car.capacity}")
    return car


def get_car(db: Session, car_id: int) -> Optional[Car]:
    return db.get(Car, car_id)


def list_cars(db: Session, route: Optional[str] = None, driver_id: Optional[str] = None) -> list[Car]:
    q = db.query(Car)
    if route:
        q = q.filter(Car.route == route)
    if driver_id:
        q = q.filter(Car.driver_id == driver_id)
    return q.order_by(Car.created_at.desc(), Car.id.desc()).all()



def set_car_capacity(db: Session, car_id: int, capacity: int, actor_id: Optional[str] = None) -> OperationResult:
    """
    Administrative capacity change. Refused when outstanding active reservations
    would no longer fit (by count or by an order number above the new capacity).
    """
    car = lock_car(db, car_id)
    if not car:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Car {car_id} not found")

    active, highest = db.query(func.count(Reservation.id), func.max(Reservation.order_number)).filter(
        Reservation.car_id == car_id, Reservation.status.in_(ACTIVE_STATUSES),
    ).one()
    if active > capacity or (highest or 0) > capacity:
        db.rollback()
        return OperationResult.fail(FailureCode.CAPACITY_BELOW_ACTIVE,
                                    f"Car {car_id} has {active} active reservation(s) up to #{highest or 0}")

    previous = car.capacity
    car.capacity = capacity
    log_action(db, actor_id, "set_car_capacity",
               {"car_id": car_id, "previous": previous, "capacity": capacity})
    db.commit()
    logger.info(f"[CARS] Car {car_id} capacity {previous} → {capacity}")
    return OperationResult.ok("Capacity updated", car_id=car_id, capacity=capacity)


def upsert_passenger(db: Session, passenger_id: str, name: str, phone: Optional[str] = None) -> Passenger:
    passenger = db.get(Passenger, passenger_id)
    if not passenger:
        passenger = Passenger(id=passenger_id, name=name, phone=phone, created_at=datetime.utcnow())
        db.add(passenger)
    else:
        passenger.name = name
        passenger.phone = phone
    db.commit()
    db.refresh(passenger)
    return passenger


def get_passenger(db: Session, passenger_id: str) -> Optional[Passenger]:
    return db.get(Passenger, passenger_id)
