# carpool/utils/retry.py
"""
Bounded retry with exponential backoff for transient store contention.
Lock timeouts, serialization failures and SQLite "database is locked" all
surface from SQLAlchemy as OperationalError.
"""

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError

from carpool.services.errors import StoreContentionError
from carpool.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_with_retry(fn: Callable[[], T], attempts: int, base_delay: float,
                   max_delay: float, label: str = "operation") -> T:
    """
    Call `fn` up to `attempts` times. `fn` must leave its session rolled back
    before raising so that the next attempt starts clean.
    """
    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except OperationalError as e:
            if attempt == attempts:
                logger.error(f"[RETRY] {label} gave up after {attempts} attempts: {e.orig}")
                raise StoreContentionError(f"{label} contended {attempts} times") from e
            logger.warning(f"[RETRY] {label} contended (attempt {attempt}/{attempts}), "
                           f"retrying in {delay:.2f}s")
            time.sleep(delay)
            delay = min(delay * 2, max_delay)
    raise StoreContentionError(f"{label} not attempted")
