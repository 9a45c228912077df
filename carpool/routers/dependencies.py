# carpool/routers/dependencies.py
"""Shared router helpers: caller identity and failure → HTTP status mapping."""

from fastapi import Header, HTTPException
from carpool.services.errors import OperationResult, FailureCode

_STATUS_FOR = {
    FailureCode.NOT_FOUND: 404,
    FailureCode.PAYMENT_REQUIRED: 422,
}


def get_actor_id(x_actor_id: str = Header(..., description="Authenticated user id from the auth layer")) -> str:
    return x_actor_id


def raise_for_failure(result: OperationResult) -> OperationResult:
    """Pass successful results through; turn typed failures into HTTP errors."""
    if result.success:
        return result
    raise HTTPException(
        status_code=_STATUS_FOR.get(result.code, 409),
        detail={"code": result.code.value, "message": result.message, **result.data},
    )
