# carpool/schemas/reservation.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ReserveSeatOut(BaseModel):
    success: bool
    reservation_id: Optional[int] = None
    order_number: Optional[int] = None
    message: str


class RejectBody(BaseModel):
    note: Optional[str] = None


class ReservationOut(BaseModel):
    id: int
    car_id: int
    passenger_id: str
    order_number: int
    status: str
    low_confidence: bool
    paid_unallocated: bool
    expires_at: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ArrivalUpdate(BaseModel):
    arrived: bool
