"""Unit tests for the arrival tracker."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from carpool.models.arrival import Arrival
from carpool.services.arrival_service import mark_arrival
from carpool.services.errors import FailureCode
from carpool.services.payment_service import attach_payment
from carpool.services.payment_verifier import VerificationResult
from carpool.services.reservation_service import confirm_reservation
from carpool.services.seat_allocation_service import reserve_seat


@pytest.fixture
def confirmed_id(db, make_car):
    car_id = make_car(driver_id="driver-7")
    rid = reserve_seat(db, car_id, "p1").data["reservation_id"]
    attach_payment(db, rid, "payments/p1.jpg",
                   VerificationResult(is_genuine=True, confidence=0.9), "p1")
    confirm_reservation(db, rid, "admin-1")
    return rid


class TestMarkArrival:
    def test_marks_confirmed_reservation(self, db, confirmed_id):
        result = mark_arrival(db, confirmed_id, True, "driver-7")

        assert result.success
        arrival = db.query(Arrival).filter_by(reservation_id=confirmed_id).one()
        assert arrival.arrived is True
        assert arrival.arrival_time is not None
        assert arrival.driver_id == "driver-7"

    def test_repeated_mark_is_idempotent(self, db, confirmed_id):
        mark_arrival(db, confirmed_id, True, "driver-7")
        first = db.query(Arrival).filter_by(reservation_id=confirmed_id).one()
        first_time = first.arrival_time

        mark_arrival(db, confirmed_id, True, "driver-7")

        rows = db.query(Arrival).filter_by(reservation_id=confirmed_id).all()
        assert len(rows) == 1
        assert rows[0].arrived is True
        assert rows[0].arrival_time == first_time

    def test_no_show_overwrites(self, db, confirmed_id):
        mark_arrival(db, confirmed_id, True, "driver-7")

        mark_arrival(db, confirmed_id, False, "driver-7")

        arrival = db.query(Arrival).filter_by(reservation_id=confirmed_id).one()
        assert arrival.arrived is False
        assert arrival.arrival_time is None

    def test_temporary_reservation_is_refused(self, db, make_car):
        rid = reserve_seat(db, make_car(), "p2").data["reservation_id"]

        result = mark_arrival(db, rid, True, "driver-7")

        assert result.code == FailureCode.NOT_CONFIRMED
        assert db.query(Arrival).count() == 0

    def test_unknown_reservation(self, db):
        assert mark_arrival(db, 404, True, "driver-7").code == FailureCode.NOT_FOUND
