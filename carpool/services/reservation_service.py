# carpool/services/reservation_service.py
"""
Reservation ledger — reads and status transitions.

State machine:
  temporary → confirmed | rejected | cancelled
  confirmed → completed | cancelled
Everything else is terminal.

Each transition is a single UPDATE conditioned on the current status, so a row
already moved by someone else (admin, sweeper, passenger) is never overwritten.
expires_at is cleared whenever a row leaves temporary.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from carpool.models.reservation import Reservation, ReservationStatus, ACTIVE_STATUSES
from carpool.models.payment import Payment
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode
from carpool.utils.logger import get_logger

logger = get_logger(__name__)

TEMPORARY = ReservationStatus.TEMPORARY.value
CONFIRMED = ReservationStatus.CONFIRMED.value


# ── Reads ─────────────────────────────────────────────────────────────────────

def get_reservation(db: Session, reservation_id: int) -> Optional[Reservation]:
    return db.get(Reservation, reservation_id)


def active_reservation_for(db: Session, passenger_id: str) -> Optional[Reservation]:
    """The passenger's single temporary/confirmed reservation, if any."""
    return (
        db.query(Reservation)
        .filter(Reservation.passenger_id == passenger_id,
                Reservation.status.in_(ACTIVE_STATUSES))
        .first()
    )


def active_order_numbers(db: Session, car_id: int) -> set[int]:
    rows = (
        db.query(Reservation.order_number)
        .filter(Reservation.car_id == car_id, Reservation.status.in_(ACTIVE_STATUSES))
        .all()
    )
    return {n for (n,) in rows}


def count_active(db: Session, car_id: int) -> int:
    return db.query(func.count(Reservation.id)).filter(
        Reservation.car_id == car_id,
        Reservation.status.in_(ACTIVE_STATUSES),
    ).scalar() or 0


def list_reservations(db: Session, car_id: Optional[int] = None, status: Optional[str] = None,
                      passenger_id: Optional[str] = None, limit: int = 50) -> list[Reservation]:
    q = db.query(Reservation)
    if car_id is not None:
        q = q.filter(Reservation.car_id == car_id)
    if status:
        q = q.filter(Reservation.status == status)
    if passenger_id:
        q = q.filter(Reservation.passenger_id == passenger_id)
    return q.order_by(Reservation.created_at.desc(), Reservation.id.desc()).limit(limit).all()


# ── Transitions ───────────────────────────────────────────────────────────────

def _transition(db: Session, reservation_id: int, from_statuses, to_status: str, now: datetime) -> bool:
    """Conditional status update. Returns False if the row was not in from_statuses."""
    updated = (
        db.query(Reservation)
        .filter(Reservation.id == reservation_id, Reservation.status.in_(from_statuses))
        .update({Reservation.status: to_status,
                 Reservation.expires_at: None,
                 Reservation.updated_at: now},
                synchronize_session=False)
    )
    return updated == 1


def confirm_reservation(db: Session, reservation_id: int, admin_id: str) -> OperationResult:
    """
    Admin payment confirmation: temporary → confirmed.
    Requires an attached payment, which is marked admin_confirmed in the same transaction.
    """
    reservation = get_reservation(db, reservation_id)
    if not reservation:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Reservation {reservation_id} not found")
    status = reservation.status
    if status != TEMPORARY:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_TEMPORARY,
                                    f"Reservation {reservation_id} is {status}")

    payment = db.query(Payment).filter(Payment.reservation_id == reservation_id).first()
    if not payment:
        db.rollback()
        return OperationResult.fail(FailureCode.PAYMENT_REQUIRED,
                                    f"Reservation {reservation_id} has no payment attached")

    now = datetime.utcnow()
    if not _transition(db, reservation_id, (TEMPORARY,), CONFIRMED, now):
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_TEMPORARY,
                                    f"Reservation {reservation_id} changed state concurrently")

    payment.admin_confirmed = True
    payment.admin_id = admin_id
    payment.payment_status = "verified"
    log_action(db, admin_id, "confirm_payment",
               {"payment_id": payment.id, "reservation_id": reservation_id})
    db.commit()
    logger.info(f"[LEDGER] Reservation {reservation_id} confirmed by {admin_id}")
    return OperationResult.ok("Reservation confirmed", reservation_id=reservation_id)


def reject_reservation(db: Session, reservation_id: int, admin_id: str,
                       note: Optional[str] = None) -> OperationResult:
    """Admin payment rejection: temporary → rejected. Frees the seat."""
    reservation = get_reservation(db, reservation_id)
    if not reservation:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Reservation {reservation_id} not found")
    status = reservation.status
    if status != TEMPORARY:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_TEMPORARY,
                                    f"Reservation {reservation_id} is {status}")

    now = datetime.utcnow()
    if not _transition(db, reservation_id, (TEMPORARY,),
                       ReservationStatus.REJECTED.value, now):
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_TEMPORARY,
                                    f"Reservation {reservation_id} changed state concurrently")

    payment = db.query(Payment).filter(Payment.reservation_id == reservation_id).first()
    if payment:
        payment.admin_confirmed = False
        payment.admin_id = admin_id
        payment.admin_note = note
        payment.payment_status = "rejected"
    log_action(db, admin_id, "reject_payment",
               {"payment_id": payment.id if payment else None,
                "reservation_id": reservation_id, "note": note})
    db.commit()
    logger.info(f"[LEDGER] Reservation {reservation_id} rejected by {admin_id}")
    return OperationResult.ok("Reservation rejected", reservation_id=reservation_id)


def cancel_reservation(db: Session, reservation_id: int, actor_id: str) -> OperationResult:
    """Passenger/admin cancellation of a temporary or confirmed reservation."""
    reservation = get_reservation(db, reservation_id)
    if not reservation:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Reservation {reservation_id} not found")
    previous = reservation.status
    if previous not in ACTIVE_STATUSES:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_CANCELLABLE,
                                    f"Reservation {reservation_id} is {previous}")
    now = datetime.utcnow()
    if not _transition(db, reservation_id, ACTIVE_STATUSES,
                       ReservationStatus.CANCELLED.value, now):
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_CANCELLABLE,
                                    f"Reservation {reservation_id} changed state concurrently")

    log_action(db, actor_id, "cancel_reservation",
               {"reservation_id": reservation_id, "previous_status": previous})
    db.commit()
    logger.info(f"[LEDGER] Reservation {reservation_id} cancelled by {actor_id} (was {previous})")
    return OperationResult.ok("Reservation cancelled", reservation_id=reservation_id)


def complete_trip(db: Session, car_id: int, actor_id: str) -> int:
    """Trip closure: every confirmed reservation of the car becomes completed."""
    now = datetime.utcnow()
    completed = (
        db.query(Reservation)
        .filter(Reservation.car_id == car_id, Reservation.status == CONFIRMED)
        .update({Reservation.status: ReservationStatus.COMPLETED.value,
                 Reservation.updated_at: now},
                synchronize_session=False)
    )
    log_action(db, actor_id, "complete_trip", {"car_id": car_id, "completed": completed})
    db.commit()
    logger.info(f"[LEDGER] Car {car_id} trip closed — {completed} reservation(s) completed")
    return completed
