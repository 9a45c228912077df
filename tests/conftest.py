"""Shared fixtures: a fresh SQLite ledger per test, built the same way as production."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before carpool.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./carpool_dev.db")
os.environ.setdefault("SWEEPER_ENABLED", "false")

import pytest
from sqlalchemy.orm import sessionmaker
from carpool.database import build_engine, create_tables
from carpool.services import car_service


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'carpool_test.db'}")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_car(db):
    """Create a car and return its id, leaving no transaction open."""
    def _make(capacity=14, title="Cairo-Alex 08:00", route="Cairo-Alex", driver_id=None):
        car = car_service.create_car(db, title=title, capacity=capacity, route=route,
                                     driver_id=driver_id, actor_id="admin-1")
        car_id = car.id
        db.rollback()
        return car_id
    return _make


@pytest.fixture
def make_passenger(db):
    def _make(passenger_id, name=None, phone=None):
        car_service.upsert_passenger(db, passenger_id, name or f"Passenger {passenger_id}",
                                     phone or f"+20100{passenger_id[-4:].rjust(4, '0')}")
        db.rollback()
        return passenger_id
    return _make
