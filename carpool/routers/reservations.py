# carpool/routers/reservations.py
"""
Reservation endpoints — seat allocation, ledger reads and admin/passenger transitions.
Failures come back as {"detail": {"code": ..., "message": ...}}.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from carpool.database import get_db
from carpool.schemas.reservation import ReserveSeatOut, ReservationOut, RejectBody
from carpool.services import reservation_service
from carpool.services.seat_allocation_service import reserve_seat_with_retry
from carpool.routers.dependencies import get_actor_id, raise_for_failure

router = APIRouter()


@router.post("/cars/{car_id}/reservations", response_model=ReserveSeatOut,
             summary="Reserve a seat (temporary hold)")
def reserve_seat(car_id: int, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    result = raise_for_failure(reserve_seat_with_retry(db, car_id, actor_id))
    return ReserveSeatOut(success=True, message=result.message, **result.data)


@router.get("/reservations", response_model=list[ReservationOut], summary="Browse the reservation ledger")
def list_reservations(car_id: Optional[int] = None, status: Optional[str] = None,
                      passenger_id: Optional[str] = None, limit: int = 50,
                      db: Session = Depends(get_db)):
    return reservation_service.list_reservations(db, car_id=car_id, status=status,
                                                 passenger_id=passenger_id, limit=limit)


@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
def get_reservation(reservation_id: int, db: Session = Depends(get_db)):
    reservation = reservation_service.get_reservation(db, reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail=f"Reservation {reservation_id} not found")
    return reservation


@router.get("/passengers/{passenger_id}/reservation", response_model=ReservationOut,
            summary="The passenger's active reservation")
def get_active_reservation(passenger_id: str, db: Session = Depends(get_db)):
    reservation = reservation_service.active_reservation_for(db, passenger_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="No active reservation")
    return reservation


@router.post("/reservations/{reservation_id}/confirm", summary="Admin: confirm payment")
def confirm(reservation_id: int, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    raise_for_failure(reservation_service.confirm_reservation(db, reservation_id, actor_id))
    return {"reservation_id": reservation_id, "status": "confirmed"}


@router.post("/reservations/{reservation_id}/reject", summary="Admin: reject payment")
def reject(reservation_id: int, body: Optional[RejectBody] = None, db: Session = Depends(get_db),
           actor_id: str = Depends(get_actor_id)):
    note = body.note if body else None
    raise_for_failure(reservation_service.reject_reservation(db, reservation_id, actor_id, note))
    return {"reservation_id": reservation_id, "status": "rejected"}


@router.post("/reservations/{reservation_id}/cancel", summary="Cancel a reservation")
def cancel(reservation_id: int, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    raise_for_failure(reservation_service.cancel_reservation(db, reservation_id, actor_id))
    return {"reservation_id": reservation_id, "status": "cancelled"}
