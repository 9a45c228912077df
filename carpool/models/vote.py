# carpool/models/vote.py
"""
Votes for an extra car, one per passenger per (route, travel_date).
Unconsumed votes of a group are counted toward the threshold; accepting a car
for the group consumes them.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, UniqueConstraint
from carpool.database import Base


class VoteForExtraCar(Base):
    __tablename__ = "votes_for_extra_cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    passenger_id = Column(String(64), nullable=False, index=True)
    route = Column(String(200), nullable=False)
    travel_date = Column(Date, nullable=False)
    consumed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("passenger_id", "route", "travel_date", name="uq_vote_passenger_route_date"),
    )

    def __repr__(self):
        return f"<Vote {self.route} {self.travel_date} by={self.passenger_id} consumed={self.consumed}>"
