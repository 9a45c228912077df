# carpool/services/payment_service.py
"""
Attaches a scored payment screenshot to a temporary hold and exposes the admin
review queue. The verifier call itself happens before this, outside the ledger
transaction (see payment_verifier.py).
"""

from datetime import datetime
from sqlalchemy.orm import Session
from carpool.config import settings
from carpool.models.payment import Payment
from carpool.models.reservation import Reservation, ReservationStatus
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode
from carpool.services.payment_verifier import VerificationResult
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def is_low_confidence(confidence) -> bool:
    return confidence is None or confidence < settings.LOW_CONFIDENCE_THRESHOLD


def attach_payment(db: Session, reservation_id: int, image_key: str,
                   verification: VerificationResult, actor_id: str) -> OperationResult:
    """Record (or replace) the payment for a temporary reservation and flag low confidence."""
    reservation = db.get(Reservation, reservation_id)
    if not reservation:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Reservation {reservation_id} not found")
    status = reservation.status
    if status != ReservationStatus.TEMPORARY.value:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_TEMPORARY,
                                    f"Reservation {reservation_id} is {status}")

    low = is_low_confidence(verification.confidence)
    payment = db.query(Payment).filter(Payment.reservation_id == reservation_id).first()
    if not payment:
        payment = Payment(reservation_id=reservation_id, created_at=datetime.utcnow())
        db.add(payment)

    payment.image_key = image_key
    payment.ai_confidence = verification.confidence
    payment.ocr_text = verification.ocr_text
    payment.extracted_fields = verification.extracted_fields
    payment.warnings = verification.warnings
    payment.admin_confirmed = None
    payment.payment_status = "pending_verification"
    reservation.low_confidence = low
    reservation.updated_at = datetime.utcnow()

    db.flush()
    payment_id = payment.id
    log_action(db, actor_id, "attach_payment",
               {"reservation_id": reservation_id, "payment_id": payment_id,
                "confidence": verification.confidence, "low_confidence": low})
    db.commit()

    if low:
        logger.warning(f"[PAYMENT] Reservation {reservation_id}: low confidence "
                       f"({verification.confidence:.2f}) — manual review required")
    else:
        logger.info(f"[PAYMENT] Reservation {reservation_id}: payment attached "
                    f"(confidence {verification.confidence:.2f})")
    return OperationResult.ok("Payment attached", reservation_id=reservation_id,
                              payment_id=payment_id, low_confidence=low)


def list_pending_payments(db: Session, limit: int = 100) -> list[Payment]:
    """Payments awaiting an admin decision on a still-open hold, oldest first."""
    return (
        db.query(Payment)
        .join(Reservation, Reservation.id == Payment.reservation_id)
        .filter(Payment.admin_confirmed.is_(None),
                Reservation.status == ReservationStatus.TEMPORARY.value)
        .order_by(Payment.created_at.asc(), Payment.id.asc())
        .limit(limit)
        .all()
    )
