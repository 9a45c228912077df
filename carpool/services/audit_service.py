# carpool/services/audit_service.py
"""
Shared audit trail service.
Used by every state-changing service. The row is added to the caller's open
transaction, so it commits (or rolls back) together with the change it records.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from carpool.models.audit_log import AuditLog
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def log_action(db: Session, actor_id: Optional[str], action: str, payload: Optional[dict] = None):
    """Stage an audit record. Does not commit."""
    db.add(AuditLog(actor_id=actor_id, action=action, payload=payload or {},
                    created_at=datetime.utcnow()))
    logger.info(f"[AUDIT][{action.upper()}] actor={actor_id} {payload or {}}")
