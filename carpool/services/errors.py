# carpool/services/errors.py
"""
Outcome types shared by every service.

Precondition failures are expected and user-facing: they come back as an
OperationResult with a FailureCode. Exceptions are reserved for the two cases
that are not the caller's fault: exhausted contention retries and ledger
integrity violations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class FailureCode(str, Enum):
    ALREADY_RESERVED = "ALREADY_RESERVED"
    CAR_FULL = "CAR_FULL"
    NOT_FOUND = "NOT_FOUND"
    NOT_TEMPORARY = "NOT_TEMPORARY"
    NOT_CANCELLABLE = "NOT_CANCELLABLE"
    NOT_CONFIRMED = "NOT_CONFIRMED"
    ALREADY_VOTED = "ALREADY_VOTED"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    NO_PENDING_VOTES = "NO_PENDING_VOTES"
    CAPACITY_BELOW_ACTIVE = "CAPACITY_BELOW_ACTIVE"


@dataclass
class OperationResult:
    success: bool
    message: str = ""
    code: Optional[FailureCode] = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str = "ok", **data) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, code: FailureCode, message: str, **data) -> "OperationResult":
        return cls(success=False, message=message, code=code, data=data)


class StoreContentionError(Exception):
    """Lock timeout / serialization conflict persisted past the retry limit."""


class LedgerIntegrityError(Exception):
    """A ledger uniqueness constraint was violated; the transaction was aborted."""
