# carpool/routers/cars.py
"""Car and passenger-profile administration endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from carpool.database import get_db
from carpool.schemas.car import CarCreate, CarCapacityUpdate, CarOut, PassengerUpsert, PassengerOut
from carpool.services import car_service, reservation_service
from carpool.services.queue_service import seat_summary
from carpool.routers.dependencies import get_actor_id, raise_for_failure

router = APIRouter()


def _with_seats(db: Session, car) -> CarOut:
    summary = seat_summary(db, car)
    out = CarOut.model_validate(car)
    out.active_reservations = summary.active
    out.available_seats = summary.available
    return out


@router.post("/cars", response_model=CarOut, summary="Create a car")
def create_car(body: CarCreate, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    car = car_service.create_car(db, title=body.title, capacity=body.capacity, route=body.route,
                                 driver_id=body.driver_id, owner_id=actor_id, actor_id=actor_id)
    return _with_seats(db, car)


@router.get("/cars", response_model=list[CarOut], summary="List cars with available seats")
def list_cars(route: Optional[str] = None, driver_id: Optional[str] = None, db: Session = Depends(get_db)):
    cars = car_service.list_cars(db, route=route, driver_id=driver_id)
    return [_with_seats(db, car) for car in cars]


@router.get("/cars/{car_id}", response_model=CarOut)
def get_car(car_id: int, db: Session = Depends(get_db)):
    car = car_service.get_car(db, car_id)
    if not car:
        raise HTTPException(status_code=404, detail=f"Car {car_id} not found")
    return _with_seats(db, car)


@router.put("/cars/{car_id}/capacity", summary="Change a car's capacity")
def set_capacity(car_id: int, body: CarCapacityUpdate, db: Session = Depends(get_db),
                 actor_id: str = Depends(get_actor_id)):
    result = raise_for_failure(car_service.set_car_capacity(db, car_id, body.capacity, actor_id=actor_id))
    return {"car_id": car_id, "capacity": result.data["capacity"], "status": "updated"}


@router.post("/cars/{car_id}/complete", summary="Close the trip: confirmed → completed")
def complete_trip(car_id: int, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    if not car_service.get_car(db, car_id):
        raise HTTPException(status_code=404, detail=f"Car {car_id} not found")
    completed = reservation_service.complete_trip(db, car_id, actor_id)
    return {"car_id": car_id, "completed": completed}


@router.post("/passengers", response_model=PassengerOut, summary="Create or update a passenger profile")
def upsert_passenger(body: PassengerUpsert, db: Session = Depends(get_db)):
    return car_service.upsert_passenger(db, body.id, body.name, body.phone)


@router.get("/passengers/{passenger_id}", response_model=PassengerOut)
def get_passenger(passenger_id: str, db: Session = Depends(get_db)):
    passenger = car_service.get_passenger(db, passenger_id)
    if not passenger:
        raise HTTPException(status_code=404, detail=f"Passenger {passenger_id} not found")
    return passenger
