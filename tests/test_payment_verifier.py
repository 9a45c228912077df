"""Unit tests for the payment screenshot verifier client and payment attachment."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import httpx
import pytest
from carpool.models.payment import Payment
from carpool.models.reservation import Reservation
from carpool.services.errors import FailureCode
from carpool.services.payment_service import attach_payment, is_low_confidence, list_pending_payments
from carpool.services.payment_verifier import PaymentVerifier, VerificationResult
from carpool.services.reservation_service import cancel_reservation, confirm_reservation
from carpool.services.seat_allocation_service import reserve_seat

VERIFIER_URL = "http://verifier.local/analyze"

GENUINE = {
    "is_genuine": True,
    "confidence": 0.93,
    "ocr_text": "Transfer 150 EGP",
    "extracted_fields": {"transaction_id": "TX123", "amount": "150",
                         "from_phone": "01000000001", "to_phone": "01000000002"},
    "warnings": [],
}


def _verifier(handler, **kwargs):
    return PaymentVerifier(url=VERIFIER_URL, api_key="secret", timeout=5,
                           transport=httpx.MockTransport(handler), **kwargs)


class TestPaymentVerifier:
    @pytest.mark.asyncio
    async def test_scores_screenshot(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=GENUINE)

        result = await _verifier(handler).verify("aGVsbG8=")

        assert seen["body"] == {"imageBase64": "aGVsbG8="}
        assert seen["auth"] == "Bearer secret"
        assert result.is_genuine is True
        assert result.confidence == 0.93
        assert result.extracted_fields["transaction_id"] == "TX123"

    @pytest.mark.asyncio
    async def test_http_error_routes_to_manual_review(self):
        result = await _verifier(lambda request: httpx.Response(502)).verify("x")

        assert result.confidence == 0.0
        assert result.warnings == ["verifier_http_502"]

    @pytest.mark.asyncio
    async def test_timeout_routes_to_manual_review(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = await _verifier(handler).verify("x")

        assert result.confidence == 0.0
        assert result.warnings == ["verifier_timeout"]

    @pytest.mark.asyncio
    async def test_garbage_body(self):
        result = await _verifier(lambda request: httpx.Response(200, text="<html>")).verify("x")
        assert result.warnings == ["verifier_error"]

    @pytest.mark.asyncio
    async def test_unconfigured_verifier(self):
        result = await PaymentVerifier(url="").verify("x")
        assert result.warnings == ["verifier_not_configured"]

    def test_confidence_is_clamped(self):
        assert VerificationResult.from_payload({"confidence": 7}).confidence == 1.0
        assert VerificationResult.from_payload({"confidence": "n/a"}).confidence == 0.0


class TestAttachPayment:
    def test_low_confidence_threshold(self):
        assert is_low_confidence(0.5)
        assert not is_low_confidence(0.75)
        assert is_low_confidence(None)

    def test_low_confidence_flags_reservation_without_blocking(self, db, make_car):
        rid = reserve_seat(db, make_car(), "p1").data["reservation_id"]

        result = attach_payment(db, rid, "payments/p1.jpg",
                                VerificationResult.unverified("verifier_timeout"), "p1")

        assert result.success
        assert result.data["low_confidence"] is True
        reservation = db.get(Reservation, rid)
        assert reservation.status == "temporary"
        assert reservation.low_confidence is True

    def test_resubmission_replaces_payment(self, db, make_car):
        rid = reserve_seat(db, make_car(), "p1").data["reservation_id"]
        attach_payment(db, rid, "payments/a.jpg", VerificationResult(is_genuine=False, confidence=0.1), "p1")

        attach_payment(db, rid, "payments/b.jpg", VerificationResult.from_payload(GENUINE), "p1")

        payment = db.query(Payment).filter_by(reservation_id=rid).one()
        assert payment.image_key == "payments/b.jpg"
        assert payment.ai_confidence == 0.93
        assert db.get(Reservation, rid).low_confidence is False

    def test_payment_on_closed_reservation_is_refused(self, db, make_car):
        rid = reserve_seat(db, make_car(), "p1").data["reservation_id"]
        cancel_reservation(db, rid, "p1")

        result = attach_payment(db, rid, "payments/late.jpg", VerificationResult.from_payload(GENUINE), "p1")

        assert result.code == FailureCode.NOT_TEMPORARY

    def test_pending_queue(self, db, make_car):
        car_id = make_car()
        waiting = reserve_seat(db, car_id, "p1").data["reservation_id"]
        done = reserve_seat(db, car_id, "p2").data["reservation_id"]
        for rid, pid in ((waiting, "p1"), (done, "p2")):
            attach_payment(db, rid, f"payments/{pid}.jpg", VerificationResult.from_payload(GENUINE), pid)
        confirm_reservation(db, done, "admin-1")

        pending = list_pending_payments(db)

        assert [p.reservation_id for p in pending] == [waiting]
