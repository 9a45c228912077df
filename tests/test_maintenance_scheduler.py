"""Unit tests for the maintenance pass and its background loop."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock, call, patch
from carpool.models.reservation import Reservation
from carpool.services.maintenance_scheduler import maintenance_loop, run_maintenance
from carpool.services.seat_allocation_service import reserve_seat
from carpool.services.voting_service import vote


class TestRunMaintenance:
    def test_runs_every_job(self, db, make_car):
        car_id = make_car()
        long_ago = datetime.utcnow() - timedelta(hours=2)
        rid = reserve_seat(db, car_id, "p1", now=long_ago).data["reservation_id"]
        vote(db, "Cairo-Alex", date.today() - timedelta(days=1), "p2")

        result = run_maintenance(db)

        assert result == {"holds_expired": 1, "votes_cleaned": 1, "anomalies_detected": 0}
        assert db.get(Reservation, rid).status == "cancelled"


class TestMaintenanceLoop:
    @pytest.mark.asyncio
    async def test_backs_off_after_failure_then_resumes(self):
        sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])
        with patch("carpool.services.maintenance_scheduler._run_once",
                   side_effect=[RuntimeError("db down"), {"holds_expired": 0}]) as mock_run, \
             patch("carpool.services.maintenance_scheduler.asyncio.sleep", sleep):
            with pytest.raises(asyncio.CancelledError):
                await maintenance_loop(interval=30)

        assert mock_run.call_count == 2
        assert sleep.await_args_list == [call(5), call(30)]
