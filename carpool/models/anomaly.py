# carpool/models/anomaly.py
"""
Anomalies table — derived fraud signals produced by the periodic scoring pass.
details holds the structured payload for the anomaly type (see schemas/anomaly.py).
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, JSON
from carpool.database import Base


class Anomaly(Base):
    __tablename__ = "anomalies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(50), nullable=False, index=True)
    score = Column(Float, nullable=False)
    details = Column(JSON)
    user_id = Column(String(64), index=True)
    user_id_hashed = Column(String(64), nullable=False)
    reviewed = Column(Boolean, default=False, nullable=False)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(String(64))
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Anomaly {self.id} type={self.type} score={self.score} reviewed={self.reviewed}>"
