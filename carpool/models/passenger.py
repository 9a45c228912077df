# carpool/models/passenger.py
"""
Passenger profiles — display name and phone, keyed by the identity layer's user id.
Read by the queue projections; never written by the ledger.
"""

from sqlalchemy import Column, String, DateTime
from carpool.database import Base


class Passenger(Base):
    __tablename__ = "passengers"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(32))
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Passenger {self.id} name={self.name}>"
