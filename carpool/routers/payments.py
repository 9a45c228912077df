# carpool/routers/payments.py
"""Payment screenshot submission and the admin review queue."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from carpool.database import get_db
from carpool.schemas.payment import PaymentSubmit, PaymentOut
from carpool.services.payment_service import attach_payment, list_pending_payments
from carpool.services.payment_verifier import PaymentVerifier
from carpool.routers.dependencies import get_actor_id, raise_for_failure

router = APIRouter()


def get_verifier() -> PaymentVerifier:
    return PaymentVerifier()


@router.post("/reservations/{reservation_id}/payment", summary="Submit a payment screenshot")
async def submit_payment(reservation_id: int, body: PaymentSubmit, db: Session = Depends(get_db),
                         actor_id: str = Depends(get_actor_id),
                         verifier: PaymentVerifier = Depends(get_verifier)):
    """
    Scores the screenshot with the external verifier first, then attaches the
    result to the hold. Confidence below the threshold flags the reservation
    for manual review; it never blocks the booking.
    """
    verification = await verifier.verify(body.image_base64)
    result = raise_for_failure(attach_payment(db, reservation_id, body.image_key, verification, actor_id))
    return {
        "reservation_id": reservation_id,
        "payment_id": result.data["payment_id"],
        "confidence": verification.confidence,
        "low_confidence": result.data["low_confidence"],
        "warnings": verification.warnings,
    }


@router.get("/payments/pending", response_model=list[PaymentOut], summary="Admin: payments awaiting review")
def pending_payments(limit: int = 100, db: Session = Depends(get_db)):
    return list_pending_payments(db, limit=limit)
