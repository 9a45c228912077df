# carpool/models/car.py
"""
Cars table — the fixed-capacity resource passengers queue for.
Created by an administrator or by accepting an extra-car vote group.
"""

from sqlalchemy import Column, Integer, String, DateTime
from carpool.database import Base


class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    capacity = Column(Integer, default=14, nullable=False)
    route = Column(String(200), index=True)
    driver_id = Column(String(64), index=True)   # profile id of the assigned driver
    owner_id = Column(String(64))
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Car {self.id} '{self.title}' capacity={self.capacity}>"
