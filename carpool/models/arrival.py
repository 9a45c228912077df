# carpool/models/arrival.py
"""
Arrivals table — one row per confirmed reservation, overwritten on re-marking.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from carpool.database import Base


class Arrival(Base):
    __tablename__ = "arrivals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), unique=True, nullable=False)
    arrived = Column(Boolean, default=False, nullable=False)
    arrival_time = Column(DateTime)      # set only while arrived
    actor_id = Column(String(64), nullable=False)
    driver_id = Column(String(64))
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Arrival reservation={self.reservation_id} arrived={self.arrived}>"
