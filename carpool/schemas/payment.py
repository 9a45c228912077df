# carpool/schemas/payment.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class PaymentSubmit(BaseModel):
    image_key: str           # storage key of the uploaded screenshot
    image_base64: str        # screenshot content for the verifier


class PaymentOut(BaseModel):
    id: int
    reservation_id: int
    image_key: str
    ai_confidence: Optional[float]
    ocr_text: Optional[str]
    extracted_fields: Optional[dict]
    warnings: Optional[list[str]]
    admin_confirmed: Optional[bool]
    admin_id: Optional[str]
    admin_note: Optional[str]
    payment_status: str
    created_at: datetime

    class Config:
        from_attributes = True
