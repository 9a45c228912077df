# carpool/models/audit_log.py
"""
Audit log table — one row per state-changing action, written in the same
transaction as the change it records.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from carpool.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(String(64))
    action = Column(String(100), nullable=False, index=True)
    payload = Column(JSON)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.id} action={self.action} actor={self.actor_id}>"
