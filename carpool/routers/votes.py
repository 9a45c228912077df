# carpool/routers/votes.py
"""Extra-car demand voting endpoints (passengers vote, owners accept)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from carpool.database import get_db
from carpool.schemas.vote import VoteCast, VoteOut, VoteSummaryOut, VoteGroupOut, AcceptExtraCar
from carpool.services import voting_service
from carpool.routers.dependencies import get_actor_id, raise_for_failure

router = APIRouter()


@router.post("/votes", response_model=VoteOut, summary="Vote for an extra car")
def cast_vote(body: VoteCast, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    result = raise_for_failure(voting_service.vote(db, body.route, body.travel_date, actor_id))
    return VoteOut(**result.data)


@router.get("/votes/summary", response_model=VoteSummaryOut)
def vote_summary(route: str, travel_date: date, db: Session = Depends(get_db)):
    return voting_service.get_vote_summary(db, route, travel_date)


@router.get("/votes/groups", response_model=list[VoteGroupOut], summary="Owner view of pending demand")
def vote_groups(from_date: Optional[date] = None, db: Session = Depends(get_db)):
    return voting_service.list_vote_groups(db, from_date)


@router.post("/votes/accept", summary="Owner: create the extra car and consume the votes")
def accept(body: AcceptExtraCar, db: Session = Depends(get_db), actor_id: str = Depends(get_actor_id)):
    title = body.title or f"{body.route} — {body.travel_date.isoformat()}"
    result = raise_for_failure(voting_service.accept_extra_car(db, body.route, body.travel_date,
                                                              title, owner_id=actor_id))
    return {"car_id": result.data["car_id"], "capacity": result.data["capacity"],
            "votes_consumed": result.data["votes_consumed"]}
