"""Unit tests for seat allocation (reserve_seat) and order-number assignment."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import threading
import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timedelta
from sqlalchemy.exc import OperationalError
from carpool.models.reservation import Reservation
from carpool.services.errors import FailureCode, LedgerIntegrityError, StoreContentionError, OperationResult
from carpool.services.reservation_service import cancel_reservation, count_active
from carpool.services.seat_allocation_service import (
    next_order_number, reserve_seat, reserve_seat_with_retry,
)


class TestNextOrderNumber:
    def test_empty_car_starts_at_one(self):
        assert next_order_number(set(), 14) == 1

    def test_follows_active_count(self):
        assert next_order_number({1, 2, 3}, 14) == 4

    def test_skips_number_still_held_after_churn(self):
        # #2 was cancelled; count+1 = 3 is still held by an active row
        assert next_order_number({1, 3}, 14) == 4

    def test_falls_back_to_lowest_free_slot_at_the_top(self):
        assert next_order_number({1, 3}, 3) == 2

    def test_full_car_has_no_number(self):
        assert next_order_number({1, 2, 3}, 3) is None


class TestReserveSeat:
    def test_fourteen_seats_then_car_full(self, db, make_car):
        car_id = make_car(capacity=14)

        numbers = []
        for i in range(14):
            result = reserve_seat(db, car_id, f"p{i}")
            assert result.success, result.message
            numbers.append(result.data["order_number"])

        assert numbers == list(range(1, 15))

        result = reserve_seat(db, car_id, "p-late")
        assert not result.success
        assert result.code == FailureCode.CAR_FULL
        assert count_active(db, car_id) == 14

    def test_new_hold_is_temporary_with_twenty_minute_expiry(self, db, make_car):
        car_id = make_car()
        now = datetime(2024, 6, 1, 8, 0, 0)

        result = reserve_seat(db, car_id, "p1", now=now)

        reservation = db.get(Reservation, result.data["reservation_id"])
        assert reservation.status == "temporary"
        assert reservation.expires_at == now + timedelta(minutes=20)
        assert reservation.low_confidence is False

    def test_passenger_with_active_reservation_is_refused(self, db, make_car):
        car_a = make_car(title="A")
        car_b = make_car(title="B")
        first = reserve_seat(db, car_a, "p1")

        result = reserve_seat(db, car_b, "p1")

        assert not result.success
        assert result.code == FailureCode.ALREADY_RESERVED
        assert result.data["reservation_id"] == first.data["reservation_id"]
        assert count_active(db, car_b) == 0

    def test_passenger_can_reserve_again_after_cancelling(self, db, make_car):
        car_id = make_car()
        first = reserve_seat(db, car_id, "p1")
        cancel_reservation(db, first.data["reservation_id"], "p1")

        result = reserve_seat(db, car_id, "p1")

        assert result.success

    def test_unknown_car(self, db):
        result = reserve_seat(db, 999, "p1")
        assert result.code == FailureCode.NOT_FOUND

    def test_cancelled_seat_is_not_renumbered(self, db, make_car):
        car_id = make_car(capacity=5)
        ids = [reserve_seat(db, car_id, f"p{i}").data["reservation_id"] for i in range(3)]
        cancel_reservation(db, ids[1], "p1")

        result = reserve_seat(db, car_id, "p9")

        # active are #1 and #3; count+1 = 3 is taken, so the newcomer gets #4
        assert result.data["order_number"] == 4
        remaining = sorted(r.order_number for r in db.query(Reservation)
                           .filter(Reservation.status == "temporary"))
        assert remaining == [1, 3, 4]

    def test_order_collision_past_the_lock_is_fatal(self, db, make_car):
        car_id = make_car()
        reserve_seat(db, car_id, "p1")

        with patch("carpool.services.seat_allocation_service.active_order_numbers", return_value=set()):
            with pytest.raises(LedgerIntegrityError):
                reserve_seat(db, car_id, "p2")

        assert count_active(db, car_id) == 1


class TestConcurrency:
    def test_two_passengers_race_for_the_last_seat(self, session_factory, make_car):
        car_id = make_car(capacity=1)
        barrier = threading.Barrier(2)
        results = {}

        def attempt(passenger_id):
            session = session_factory()
            try:
                barrier.wait()
                results[passenger_id] = reserve_seat_with_retry(session, car_id, passenger_id)
            finally:
                session.close()

        threads = [threading.Thread(target=attempt, args=(p,)) for p in ("racer-a", "racer-b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        outcomes = sorted(results.values(), key=lambda r: r.success)
        assert [r.success for r in outcomes] == [False, True]
        assert outcomes[1].data["order_number"] == 1
        assert outcomes[0].code == FailureCode.CAR_FULL

    def test_many_passengers_never_exceed_capacity(self, session_factory, make_car):
        car_id = make_car(capacity=3)
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def attempt(passenger_id):
            session = session_factory()
            try:
                barrier.wait()
                result = reserve_seat_with_retry(session, car_id, passenger_id)
                with lock:
                    results.append(result)
            finally:
                session.close()

        threads = [threading.Thread(target=attempt, args=(f"p{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        winners = [r for r in results if r.success]
        assert len(winners) == 3
        assert sorted(r.data["order_number"] for r in winners) == [1, 2, 3]
        assert all(r.code == FailureCode.CAR_FULL for r in results if not r.success)


class TestRetry:
    def _contended(self):
        return OperationalError("SELECT ... FOR UPDATE", {}, Exception("lock timeout"))

    def test_transient_contention_is_retried(self):
        ok = OperationResult.ok("Temporary hold placed", reservation_id=1, order_number=1)
        with patch("carpool.services.seat_allocation_service.reserve_seat",
                   side_effect=[self._contended(), ok]) as mock_reserve, \
             patch("carpool.utils.retry.time.sleep") as mock_sleep:
            result = reserve_seat_with_retry(MagicMock(), 1, "p1")

        assert result is ok
        assert mock_reserve.call_count == 2
        mock_sleep.assert_called_once()

    def test_gives_up_after_bounded_attempts(self):
        with patch("carpool.services.seat_allocation_service.reserve_seat",
                   side_effect=self._contended()) as mock_reserve, \
             patch("carpool.utils.retry.time.sleep"):
            with pytest.raises(StoreContentionError):
                reserve_seat_with_retry(MagicMock(), 1, "p1")

        assert mock_reserve.call_count == 3

    def test_backoff_doubles(self):
        with patch("carpool.services.seat_allocation_service.reserve_seat",
                   side_effect=self._contended()), \
             patch("carpool.utils.retry.time.sleep") as mock_sleep:
            with pytest.raises(StoreContentionError):
                reserve_seat_with_retry(MagicMock(), 1, "p1")

        delays = [c.args[0] for c in mock_sleep.call_args_list]
        assert delays == [0.05, 0.1]
