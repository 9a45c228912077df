# carpool/models/payment.py
"""
Payments table — the screenshot verification record attached to a reservation.
admin_confirmed is tri-state: NULL (awaiting review), true, false.
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, Text, JSON, ForeignKey
from carpool.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), unique=True, nullable=False)
    image_key = Column(String(500), nullable=False)   # storage key, signed URLs issued elsewhere
    ai_confidence = Column(Float)
    ocr_text = Column(Text)
    extracted_fields = Column(JSON)
    warnings = Column(JSON)
    admin_confirmed = Column(Boolean)
    admin_id = Column(String(64))
    admin_note = Column(Text)
    payment_status = Column(String(30), default="pending_verification", nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Payment {self.id} reservation={self.reservation_id} confirmed={self.admin_confirmed}>"
