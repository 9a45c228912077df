# carpool/schemas/car.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class CarCreate(BaseModel):
    title: str
    capacity: Optional[int] = Field(default=None, gt=0)
    route: Optional[str] = None
    driver_id: Optional[str] = None


class CarCapacityUpdate(BaseModel):
    capacity: int = Field(gt=0)


class CarOut(BaseModel):
    id: int
    title: str
    capacity: int
    route: Optional[str]
    driver_id: Optional[str]
    owner_id: Optional[str]
    created_at: datetime
    active_reservations: Optional[int] = None
    available_seats: Optional[int] = None

    class Config:
        from_attributes = True


class PassengerUpsert(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None


class PassengerOut(BaseModel):
    id: str
    name: str
    phone: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
