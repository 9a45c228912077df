# carpool/services/seat_allocation_service.py
"""
Seat allocation — admits a temporary hold on a car or rejects with a reason.

Runs as one transaction per call:
  1. lock the car row (SELECT ... FOR UPDATE, bounded by lock_timeout on Postgres)
  2. passenger already holds an active reservation → ALREADY_RESERVED
  3. active reservations ≥ capacity → CAR_FULL
  4. insert a temporary reservation with the next order number

The car lock serializes steps 3-4 per car. Same-passenger races across different
cars are caught by the partial unique index on active passenger rows.
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from carpool.config import settings
from carpool.models.car import Car
from carpool.models.reservation import Reservation, ReservationStatus
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode, LedgerIntegrityError
from carpool.services.reservation_service import active_reservation_for, active_order_numbers
from carpool.utils.retry import run_with_retry
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def next_order_number(taken: set[int], capacity: int) -> Optional[int]:
    """
    One more than the active count. If holds churned and that number is still
    held, the next free number above it, else the lowest free one. Always within
    1..capacity; None when the car is full.
    """
    candidate = len(taken) + 1
    for n in range(candidate, capacity + 1):
        if n not in taken:
            return n
    for n in range(1, min(candidate, capacity + 1)):
        if n not in taken:
            return n
    return None


def lock_car(db: Session, car_id: int) -> Optional[Car]:
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = {int(settings.DB_LOCK_TIMEOUT_MS)}"))
    return db.query(Car).filter(Car.id == car_id).with_for_update().first()


def reserve_seat(db: Session, car_id: int, passenger_id: str,
                 now: Optional[datetime] = None) -> OperationResult:
    """
    Place a temporary hold for `passenger_id` on `car_id`.
    Raises OperationalError on lock contention (session rolled back) and
    LedgerIntegrityError if an order number collided past the lock.
    """
    now = now or datetime.utcnow()
    try:
        car = lock_car(db, car_id)
        if not car:
            db.rollback()
            return OperationResult.fail(FailureCode.NOT_FOUND, f"Car {car_id} not found")

        existing = active_reservation_for(db, passenger_id)
        if existing:
            existing_id = existing.id
            db.rollback()
            logger.info(f"[RESERVE] {passenger_id} already holds reservation {existing_id}")
            return OperationResult.fail(FailureCode.ALREADY_RESERVED,
                                        "Passenger already has an active reservation",
                                        reservation_id=existing_id)

        taken = active_order_numbers(db, car_id)
        capacity = car.capacity
        order_number = next_order_number(taken, capacity) if len(taken) < capacity else None
        if order_number is None:
            db.rollback()
            logger.info(f"[RESERVE] Car {car_id} full ({len(taken)}/{capacity}) — {passenger_id} refused")
            return OperationResult.fail(FailureCode.CAR_FULL, f"Car {car_id} is full")

        reservation = Reservation(
            car_id=car_id,
            passenger_id=passenger_id,
            order_number=order_number,
            status=ReservationStatus.TEMPORARY.value,
            low_confidence=False,
            paid_unallocated=False,
            expires_at=now + timedelta(minutes=settings.HOLD_DURATION_MINUTES),
            created_at=now,
            updated_at=now,
        )
        db.add(reservation)
        db.flush()
        reservation_id = reservation.id
        log_action(db, passenger_id, "reserve_seat",
                   {"car_id": car_id, "reservation_id": reservation_id, "order_number": order_number})
        db.commit()

    except IntegrityError as e:
        db.rollback()
        existing = active_reservation_for(db, passenger_id)
        existing_id = existing.id if existing else None
        db.rollback()
        if existing_id is not None:
            logger.info(f"[RESERVE] {passenger_id} won a concurrent reservation elsewhere ({existing_id})")
            return OperationResult.fail(FailureCode.ALREADY_RESERVED,
                                        "Passenger already has an active reservation",
                                        reservation_id=existing_id)
        logger.error(f"[RESERVE] Integrity violation on car {car_id}: {e.orig}")
        raise LedgerIntegrityError(f"Order number collision on car {car_id}") from e

    except OperationalError:
        db.rollback()
        raise

    logger.info(f"[RESERVE] Car {car_id}: {passenger_id} holds #{order_number} "
                f"(reservation {reservation_id}, {len(taken) + 1}/{capacity})")
    return OperationResult.ok("Temporary hold placed",
                              reservation_id=reservation_id, order_number=order_number)


def reserve_seat_with_retry(db: Session, car_id: int, passenger_id: str) -> OperationResult:
    """reserve_seat with bounded exponential backoff on transient contention."""
    return run_with_retry(
        lambda: reserve_seat(db, car_id, passenger_id),
        attempts=settings.RESERVE_MAX_ATTEMPTS,
        base_delay=settings.RESERVE_RETRY_BASE_DELAY,
        max_delay=settings.RESERVE_RETRY_MAX_DELAY,
        label=f"reserve_seat(car={car_id})",
    )
