"""Unit tests for the expiry sweeper."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime, timedelta
from unittest.mock import patch
from carpool.models.reservation import Reservation
from carpool.services.expiry_sweeper import sweep_expired
from carpool.services.payment_service import attach_payment
from carpool.services.payment_verifier import VerificationResult
from carpool.services.reservation_service import confirm_reservation
from carpool.services.seat_allocation_service import reserve_seat

T0 = datetime(2024, 6, 1, 8, 0, 0)


def _hold(db, car_id, passenger_id, now=T0):
    return reserve_seat(db, car_id, passenger_id, now=now).data["reservation_id"]


def _pay(db, reservation_id, passenger_id):
    attach_payment(db, reservation_id, "payments/x.jpg",
                   VerificationResult(is_genuine=True, confidence=0.9), passenger_id)


class TestSweepExpired:
    def test_expired_hold_is_cancelled_and_seat_reusable(self, db, make_car):
        car_id = make_car(capacity=1)
        rid = _hold(db, car_id, "p1")

        expired = sweep_expired(db, now=T0 + timedelta(minutes=21))

        assert expired == 1
        reservation = db.get(Reservation, rid)
        assert reservation.status == "cancelled"
        assert reservation.expires_at is None
        assert reservation.paid_unallocated is False
        db.rollback()
        assert reserve_seat(db, car_id, "p2", now=T0 + timedelta(minutes=22)).success

    def test_hold_within_window_survives(self, db, make_car):
        car_id = make_car()
        rid = _hold(db, car_id, "p1")

        assert sweep_expired(db, now=T0 + timedelta(minutes=19)) == 0
        assert db.get(Reservation, rid).status == "temporary"

    def test_confirmed_reservation_is_never_swept(self, db, make_car):
        car_id = make_car()
        rid = _hold(db, car_id, "p1")
        _pay(db, rid, "p1")
        confirm_reservation(db, rid, "admin-1")

        assert sweep_expired(db, now=T0 + timedelta(days=2)) == 0
        assert db.get(Reservation, rid).status == "confirmed"

    def test_second_run_is_a_no_op(self, db, make_car):
        car_id = make_car()
        _hold(db, car_id, "p1")
        _hold(db, car_id, "p2")
        later = T0 + timedelta(minutes=30)

        assert sweep_expired(db, now=later) == 2
        assert sweep_expired(db, now=later) == 0

    def test_paid_hold_is_flagged_paid_unallocated(self, db, make_car):
        car_id = make_car()
        paid = _hold(db, car_id, "p1")
        _pay(db, paid, "p1")
        unpaid = _hold(db, car_id, "p2")

        sweep_expired(db, now=T0 + timedelta(minutes=25))

        assert db.get(Reservation, paid).paid_unallocated is True
        assert db.get(Reservation, unpaid).paid_unallocated is False

    def test_only_expired_holds_are_touched(self, db, make_car):
        car_id = make_car()
        old = _hold(db, car_id, "p1", now=T0)
        fresh = _hold(db, car_id, "p2", now=T0 + timedelta(minutes=15))

        assert sweep_expired(db, now=T0 + timedelta(minutes=25)) == 1
        assert db.get(Reservation, old).status == "cancelled"
        assert db.get(Reservation, fresh).status == "temporary"

    def test_failure_on_one_row_does_not_stop_the_sweep(self, db, make_car):
        car_id = make_car()
        first = _hold(db, car_id, "p1")
        second = _hold(db, car_id, "p2")

        from carpool.services import expiry_sweeper
        real_expire_one = expiry_sweeper._expire_one

        def flaky(session, reservation_id, now):
            if reservation_id == first:
                raise RuntimeError("connection reset")
            return real_expire_one(session, reservation_id, now)

        with patch("carpool.services.expiry_sweeper._expire_one", side_effect=flaky):
            expired = sweep_expired(db, now=T0 + timedelta(minutes=30))

        assert expired == 1
        assert db.get(Reservation, first).status == "temporary"
        assert db.get(Reservation, second).status == "cancelled"
