# carpool/services/anomaly_service.py
"""
Anomaly scoring — periodic pass over reservation history that flags
passengers worth a manual look:
  - multiple_reservations_24h   many holds opened within a day
  - multiple_low_confidence     repeated screenshots below the trust threshold
  - multiple_paid_unallocated   repeated holds that expired with a payment attached

A (user, kind) is not raised again while an unreviewed one exists within the cooldown,
nor when the latest one already lists every offending reservation.
Anomalies are derived data; nothing here mutates the ledger.
"""

import hashlib
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from carpool.config import settings
from carpool.models.anomaly import Anomaly
from carpool.models.reservation import Reservation
from carpool.schemas.anomaly import (
    AnomalyDetails, MultipleReservations24h, MultipleLowConfidence, MultiplePaidUnallocated,
)
from carpool.services.audit_service import log_action
from carpool.services.errors import OperationResult, FailureCode
from carpool.utils.logger import get_logger

logger = get_logger(__name__)


def hash_user_id(user_id: str) -> str:
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def anomaly_score(count: int, threshold: int) -> float:
    return round(min(1.0, max(0.5, count / (2 * threshold))), 2)


def _offenders(db: Session, since: datetime, threshold: int, *conditions) -> dict[str, list[int]]:
    """passenger_id → reservation ids, for passengers with ≥ threshold matching reservations."""
    heavy = (
        db.query(Reservation.passenger_id)
        .filter(Reservation.created_at >= since, *conditions)
        .group_by(Reservation.passenger_id)
        .having(func.count(Reservation.id) >= threshold)
        .all()
    )
    result = {}
    for (passenger_id,) in heavy:
        ids = (
            db.query(Reservation.id)
            .filter(Reservation.passenger_id == passenger_id, Reservation.created_at >= since, *conditions)
            .order_by(Reservation.id)
            .all()
        )
        result[passenger_id] = [rid for (rid,) in ids]
    return result


def _already_covered(db: Session, user_id: str, kind: str, reservation_ids: list[int],
                     now: datetime) -> bool:
    """
    True while an unreviewed anomaly of this kind is inside the cooldown, or when
    the latest one (reviewed or not) already lists every offending reservation.
    """
    cooldown = timedelta(hours=settings.ANOMALY_COOLDOWN_HOURS)
    pending = db.query(Anomaly.id).filter(
        Anomaly.user_id == user_id, Anomaly.type == kind,
        Anomaly.reviewed.is_(False),
        Anomaly.created_at >= now - cooldown,
    ).first()
    if pending:
        return True

    latest = (
        db.query(Anomaly)
        .filter(Anomaly.user_id == user_id, Anomaly.type == kind)
        .order_by(Anomaly.created_at.desc(), Anomaly.id.desc())
        .first()
    )
    if not latest:
        return False
    seen = set((latest.details or {}).get("reservation_ids") or [])
    return set(reservation_ids) <= seen


def _raise(db: Session, user_id: str, details: AnomalyDetails, count: int, threshold: int,
           now: datetime) -> bool:
    if _already_covered(db, user_id, details.kind, details.reservation_ids, now):
        return False
    score = anomaly_score(count, threshold)
    db.add(Anomaly(type=details.kind, score=score, details=details.model_dump(),
                   user_id=user_id, user_id_hashed=hash_user_id(user_id),
                   reviewed=False, created_at=now))
    logger.warning(f"[ANOMALY][{details.kind.upper()}] user={hash_user_id(user_id)[:12]} "
                   f"count={count} score={score}")
    return True


def detect_anomalies(db: Session, now: Optional[datetime] = None) -> int:
    """Run every detector and persist new anomalies. Returns how many were raised."""
    now = now or datetime.utcnow()
    raised = 0

    day_ago = now - timedelta(hours=24)
    week_ago = now - timedelta(days=7)

    threshold = settings.ANOMALY_RESERVATIONS_24H
    for user_id, ids in _offenders(db, day_ago, threshold).items():
        details = MultipleReservations24h(reservation_count=len(ids), reservation_ids=ids)
        raised += _raise(db, user_id, details, len(ids), threshold, now)

    threshold = settings.ANOMALY_LOW_CONFIDENCE_7D
    for user_id, ids in _offenders(db, week_ago, threshold, Reservation.low_confidence.is_(True)).items():
        details = MultipleLowConfidence(low_confidence_count=len(ids), reservation_ids=ids)
        raised += _raise(db, user_id, details, len(ids), threshold, now)

    threshold = settings.ANOMALY_PAID_UNALLOCATED_7D
    for user_id, ids in _offenders(db, week_ago, threshold, Reservation.paid_unallocated.is_(True)).items():
        details = MultiplePaidUnallocated(paid_unallocated_count=len(ids), reservation_ids=ids)
        raised += _raise(db, user_id, details, len(ids), threshold, now)

    db.commit()
    if raised:
        logger.info(f"[ANOMALY] Detected {raised} new anomaly(ies)")
    return raised


def list_anomalies(db: Session, kind: Optional[str] = None, unreviewed: bool = False,
                   limit: int = 50) -> list[Anomaly]:
    q = db.query(Anomaly)
    if kind:
        q = q.filter(Anomaly.type == kind)
    if unreviewed:
        q = q.filter(Anomaly.reviewed.is_(False))
    return q.order_by(Anomaly.created_at.desc(), Anomaly.id.desc()).limit(limit).all()


def review_anomaly(db: Session, anomaly_id: int, reviewer_id: str) -> OperationResult:
    anomaly = db.get(Anomaly, anomaly_id)
    if not anomaly:
        db.rollback()
        return OperationResult.fail(FailureCode.NOT_FOUND, f"Anomaly {anomaly_id} not found")
    anomaly.reviewed = True
    anomaly.reviewed_at = datetime.utcnow()
    anomaly.reviewed_by = reviewer_id
    log_action(db, reviewer_id, "review_anomaly", {"anomaly_id": anomaly_id})
    db.commit()
    return OperationResult.ok("Anomaly reviewed", anomaly_id=anomaly_id)
