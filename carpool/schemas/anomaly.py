# carpool/schemas/anomaly.py
"""
Anomaly payloads as a tagged union keyed on `kind`.
The details column stores one of these, validated on write and on read.
"""

from pydantic import BaseModel, Field, TypeAdapter
from datetime import datetime
from typing import Annotated, Literal, Optional, Union


class MultipleReservations24h(BaseModel):
    kind: Literal["multiple_reservations_24h"] = "multiple_reservations_24h"
    reservation_count: int
    window_hours: int = 24
    reservation_ids: list[int] = []


class MultipleLowConfidence(BaseModel):
    kind: Literal["multiple_low_confidence"] = "multiple_low_confidence"
    low_confidence_count: int
    window_days: int = 7
    reservation_ids: list[int] = []


class MultiplePaidUnallocated(BaseModel):
    kind: Literal["multiple_paid_unallocated"] = "multiple_paid_unallocated"
    paid_unallocated_count: int
    window_days: int = 7
    reservation_ids: list[int] = []


AnomalyDetails = Annotated[
    Union[MultipleReservations24h, MultipleLowConfidence, MultiplePaidUnallocated],
    Field(discriminator="kind"),
]

anomaly_details_adapter = TypeAdapter(AnomalyDetails)


class AnomalyOut(BaseModel):
    id: int
    type: str
    score: float
    details: Optional[AnomalyDetails]
    user_id: Optional[str]
    user_id_hashed: str
    reviewed: bool
    reviewed_at: Optional[datetime]
    reviewed_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
