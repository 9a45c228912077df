"""Unit tests for car administration."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from carpool.services.car_service import list_cars, set_car_capacity
from carpool.services.errors import FailureCode
from carpool.services.seat_allocation_service import reserve_seat


class TestListCars:
    def test_driver_sees_only_assigned_cars(self, db, make_car):
        mine = make_car(title="Morning", driver_id="driver-1")
        make_car(title="Evening", driver_id="driver-2")
        make_car(title="Unassigned")

        cars = list_cars(db, driver_id="driver-1")

        assert [c.id for c in cars] == [mine]

    def test_route_and_driver_combine(self, db, make_car):
        make_car(route="Cairo-Alex", driver_id="driver-1")
        suez = make_car(route="Cairo-Suez", driver_id="driver-1")

        cars = list_cars(db, route="Cairo-Suez", driver_id="driver-1")

        assert [c.id for c in cars] == [suez]

    def test_no_filter_lists_everything(self, db, make_car):
        make_car(driver_id="driver-1")
        make_car()
        assert len(list_cars(db)) == 2


class TestSetCarCapacity:
    def test_refused_below_highest_active_order_number(self, db, make_car):
        car_id = make_car(capacity=5)
        for pid in ("p1", "p2", "p3"):
            reserve_seat(db, car_id, pid)

        result = set_car_capacity(db, car_id, 2, actor_id="admin-1")

        assert result.code == FailureCode.CAPACITY_BELOW_ACTIVE

    def test_unknown_car(self, db):
        assert set_car_capacity(db, 77, 10).code == FailureCode.NOT_FOUND
