# carpool/schemas/vote.py
from pydantic import BaseModel
from datetime import date
from typing import Optional


class VoteCast(BaseModel):
    route: str
    travel_date: date


class VoteOut(BaseModel):
    votes_count: int
    remaining_to_trigger: int


class VoteSummaryOut(VoteOut):
    total_needed: int


class VoteGroupOut(VoteOut):
    route: str
    travel_date: date
    ready: bool


class AcceptExtraCar(BaseModel):
    route: str
    travel_date: date
    title: Optional[str] = None
