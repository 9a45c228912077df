# carpool/schemas/queue.py
from enum import Enum
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ViewerRole(str, Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"


class PassengerQueueEntry(BaseModel):
    order_number: int
    status: str
    passenger_name: Optional[str]


class DriverQueueEntry(BaseModel):
    reservation_id: int
    order_number: int
    status: str
    passenger_phone: Optional[str]
    arrived: bool = False
    arrival_time: Optional[datetime] = None


class SeatSummaryOut(BaseModel):
    car_id: int
    capacity: int
    active: int
    available: int
