# carpool/services/expiry_sweeper.py
"""
Expiry sweeper — cancels temporary holds whose expires_at has passed.

Stateless: every run re-derives what to expire from stored deadlines, so it is
safe to run after a restart, concurrently with itself, and alongside
reserve_seat. Each row is its own transaction, conditioned on status=temporary;
a hold confirmed or rejected in the meantime is left untouched.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from carpool.models.reservation import Reservation, ReservationStatus
from carpool.models.payment import Payment
from carpool.services.audit_service import log_action
from carpool.utils.logger import get_logger

logger = get_logger(__name__)

TEMPORARY = ReservationStatus.TEMPORARY.value


def _expired_hold_ids(db: Session, now: datetime) -> list[int]:
    rows = (
        db.query(Reservation.id)
        .filter(Reservation.status == TEMPORARY, Reservation.expires_at < now)
        .order_by(Reservation.expires_at)
        .all()
    )
    db.rollback()
    return [rid for (rid,) in rows]


def _expire_one(db: Session, reservation_id: int, now: datetime) -> bool:
    has_payment = db.query(Payment.id).filter(Payment.reservation_id == reservation_id).first() is not None
    updated = (
        db.query(Reservation)
        .filter(Reservation.id == reservation_id,
                Reservation.status == TEMPORARY,
                Reservation.expires_at < now)
        .update({Reservation.status: ReservationStatus.CANCELLED.value,
                 Reservation.expires_at: None,
                 Reservation.paid_unallocated: has_payment,
                 Reservation.updated_at: now},
                synchronize_session=False)
    )
    if updated:
        log_action(db, None, "expire_hold",
                   {"reservation_id": reservation_id, "paid_unallocated": has_payment})
    db.commit()
    return updated == 1


def sweep_expired(db: Session, now: Optional[datetime] = None) -> int:
    """Cancel every expired temporary hold. Returns how many rows this run moved."""
    now = now or datetime.utcnow()
    expired = 0
    for reservation_id in _expired_hold_ids(db, now):
        try:
            if _expire_one(db, reservation_id, now):
                expired += 1
        except Exception as e:
            db.rollback()
            logger.error(f"[SWEEP] Failed to expire reservation {reservation_id}: {e}", exc_info=True)

    if expired:
        logger.info(f"[SWEEP] Expired {expired} temporary hold(s)")
    else:
        logger.debug("[SWEEP] Nothing to expire")
    return expired
