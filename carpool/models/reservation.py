# carpool/models/reservation.py
"""
Reservation ledger table — one row per seat request, never deleted.

Two partial unique indexes back the allocation rules at the store level:
  - (car_id, order_number) among active rows
  - (passenger_id) among active rows
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index, text
from carpool.database import Base


class ReservationStatus(str, Enum):
    TEMPORARY = "temporary"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    COMPLETED = "completed"


ACTIVE_STATUSES = (ReservationStatus.TEMPORARY.value, ReservationStatus.CONFIRMED.value)

_ACTIVE_WHERE = text("status IN ('temporary', 'confirmed')")


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False, index=True)
    passenger_id = Column(String(64), nullable=False, index=True)
    order_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.TEMPORARY.value, index=True)
    low_confidence = Column(Boolean, default=False, nullable=False)
    paid_unallocated = Column(Boolean, default=False, nullable=False)  # hold expired with a payment attached
    expires_at = Column(DateTime, index=True)   # only while temporary
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime)

    __table_args__ = (
        Index("uq_reservations_active_order", "car_id", "order_number", unique=True,
              postgresql_where=_ACTIVE_WHERE, sqlite_where=_ACTIVE_WHERE),
        Index("uq_reservations_active_passenger", "passenger_id", unique=True,
              postgresql_where=_ACTIVE_WHERE, sqlite_where=_ACTIVE_WHERE),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self):
        return f"<Reservation {self.id} car={self.car_id} #{self.order_number} status={self.status}>"
