# carpool/services/voting_service.py
"""
Demand voting — passengers vote for an extra car on a (route, travel_date).

Unconsumed votes of a group count toward VOTE_THRESHOLD. Reaching it only
drives remaining_to_trigger to zero; an owner still calls accept_extra_car,
which creates the car and consumes exactly the votes it counted. Votes arriving
after that start a fresh group.
"""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from carpool.config import settings
from carpool.models.car import Car
from carpool.models.vote import VoteForExtraCar
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def _unconsumed(db: Session, route: str, travel_date: date):
    return db.query(VoteForExtraCar).filter(
        VoteForExtraCar.route == route,
        VoteForExtraCar.travel_date == travel_date,
        VoteForExtraCar.consumed.is_(False),
    )


def count_votes(db: Session, route: str, travel_date: date) -> int:
    return _unconsumed(db, route, travel_date).with_entities(func.count(VoteForExtraCar.id)).scalar() or 0


def get_vote_summary(db: Session, route: str, travel_date: date) -> dict:
    votes = count_votes(db, route, travel_date)
    return {
        "votes_count": votes,
        "remaining_to_trigger": max(0, settings.VOTE_THRESHOLD - votes),
        "total_needed": settings.VOTE_THRESHOLD,
    }


def vote(db: Session, route: str, travel_date: date, passenger_id: str) -> OperationResult:
    """Cast one vote. A duplicate returns ALREADY_VOTED and leaves the count unchanged."""
    db.add(VoteForExtraCar(passenger_id=passenger_id, route=route, travel_date=travel_date,
                           consumed=False, created_at=datetime.utcnow()))
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        summary = get_vote_summary(db, route, travel_date)
        db.rollback()
        logger.info(f"[VOTE] {passenger_id} already voted for {route} on {travel_date}")
        return OperationResult.fail(FailureCode.ALREADY_VOTED,
                                    "Passenger already voted for this route and date",
                                    votes_count=summary["votes_count"],
                                    remaining_to_trigger=summary["remaining_to_trigger"])

    log_action(db, passenger_id, "vote_extra_car", {"route": route, "travel_date": str(travel_date)})
    summary = get_vote_summary(db, route, travel_date)
    db.commit()

    logger.info(f"[VOTE] {route} {travel_date}: {summary['votes_count']}/{settings.VOTE_THRESHOLD}")
    if summary["remaining_to_trigger"] == 0:
        logger.info(f"[VOTE] {route} {travel_date} reached the threshold — owners can add a car")
    return OperationResult.ok("Vote recorded",
                              votes_count=summary["votes_count"],
                              remaining_to_trigger=summary["remaining_to_trigger"])


def list_vote_groups(db: Session, from_date: Optional[date] = None) -> list[dict]:
    """Unconsumed vote counts per (route, travel_date), biggest demand first."""
    from_date = from_date or date.today()
    rows = (
        db.query(VoteForExtraCar.route, VoteForExtraCar.travel_date,
                 func.count(VoteForExtraCar.id).label("votes_count"))
        .filter(VoteForExtraCar.consumed.is_(False), VoteForExtraCar.travel_date >= from_date)
        .group_by(VoteForExtraCar.route, VoteForExtraCar.travel_date)
        .order_by(func.count(VoteForExtraCar.id).desc(), VoteForExtraCar.travel_date.asc())
        .all()
    )
    return [
        {"route": route, "travel_date": travel_date, "votes_count": votes,
         "remaining_to_trigger": max(0, settings.VOTE_THRESHOLD - votes),
         "ready": votes >= settings.VOTE_THRESHOLD}
        for route, travel_date, votes in rows
    ]


def accept_extra_car(db: Session, route: str, travel_date: date, title: str,
                     owner_id: Optional[str] = None) -> OperationResult:
    """
    Create a car for the group and consume its votes, atomically.
    capacity = min(votes, standard capacity).
    """
    votes = _unconsumed(db, route, travel_date).with_for_update().all()
    if not votes:
        db.rollback()
        return OperationResult.fail(FailureCode.NO_PENDING_VOTES,
                                    f"No pending votes for {route} on {travel_date}")

    vote_ids = [v.id for v in votes]
    capacity = min(len(vote_ids), settings.DEFAULT_CAR_CAPACITY)
    car = Car(title=title, capacity=capacity, route=route, owner_id=owner_id,
              created_at=datetime.utcnow())
    db.add(car)
    db.query(VoteForExtraCar).filter(VoteForExtraCar.id.in_(vote_ids)).update(
        {VoteForExtraCar.consumed: True}, synchronize_session=False)
    db.flush()
    car_id = car.id
    log_action(db, owner_id, "accept_extra_car",
               {"car_id": car_id, "route": route, "travel_date": str(travel_date),
                "votes_consumed": len(vote_ids)})
    db.commit()

    logger.info(f"[VOTE] Extra car {car_id} '{title}' created for {route} {travel_date} "
                f"(capacity {capacity}, {len(vote_ids)} votes consumed)")
    return OperationResult.ok("Extra car created", car_id=car_id, capacity=capacity,
                              votes_consumed=len(vote_ids))


def expire_stale_votes(db: Session, today: Optional[date] = None) -> int:
    """Delete unconsumed votes whose travel date has passed."""
    today = today or date.today()
    deleted = (
        db.query(VoteForExtraCar)
        .filter(VoteForExtraCar.consumed.is_(False), VoteForExtraCar.travel_date < today)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info(f"[VOTE] Removed {deleted} stale vote(s) for past travel dates")
    return deleted
