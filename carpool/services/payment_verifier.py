# carpool/services/payment_verifier.py
"""
Client for the external payment-screenshot scorer.

POSTs the base64 screenshot to VERIFIER_URL and expects JSON:
  {"is_genuine": bool, "confidence": 0.0-1.0, "ocr_text": str,
   "extracted_fields": {"transaction_id", "amount", "from_phone", "to_phone"},
   "warnings": [str]}

Never called while a ledger transaction is open. A verifier outage must not
block bookings: any failure yields confidence 0.0 plus a warning, which routes
the reservation to manual review.
"""

from dataclasses import dataclass, field
from typing import Optional
import httpx
from carpool.config import settings
from carpool.utils.logger import get_logger

logger = get_logger(__name__)

EXTRACTED_FIELD_NAMES = ("transaction_id", "amount", "from_phone", "to_phone")


@dataclass
class VerificationResult:
    is_genuine: bool
    confidence: float
    ocr_text: str = ""
    extracted_fields: dict = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def unverified(cls, reason: str) -> "VerificationResult":
        return cls(is_genuine=False, confidence=0.0,
                   extracted_fields={k: None for k in EXTRACTED_FIELD_NAMES},
                   warnings=[reason])

    @classmethod
    def from_payload(cls, data: dict) -> "VerificationResult":
        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0
        fields = data.get("extracted_fields") or {}
        return cls(
            is_genuine=bool(data.get("is_genuine", data.get("is_vodafone_cash", False))),
            confidence=min(1.0, max(0.0, confidence)),
            ocr_text=data.get("ocr_text") or "",
            extracted_fields={k: fields.get(k) for k in EXTRACTED_FIELD_NAMES},
            warnings=list(data.get("warnings") or []),
        )


class PaymentVerifier:
    def __init__(self, url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url if url is not None else settings.VERIFIER_URL
        self.api_key = api_key if api_key is not None else settings.VERIFIER_API_KEY
        self.timeout = timeout if timeout is not None else settings.VERIFIER_TIMEOUT_SECONDS
        self._transport = transport

    async def verify(self, image_base64: str) -> VerificationResult:
        if not self.url:
            logger.warning("[PAYMENT] No verifier configured — screenshot goes to manual review")
            return VerificationResult.unverified("verifier_not_configured")

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json={"imageBase64": image_base64}, headers=headers)
            if response.status_code != 200:
                logger.warning(f"[PAYMENT] Verifier returned HTTP {response.status_code}")
                return VerificationResult.unverified(f"verifier_http_{response.status_code}")
            result = VerificationResult.from_payload(response.json())
        except httpx.TimeoutException:
            logger.warning("[PAYMENT] Verifier timed out")
            return VerificationResult.unverified("verifier_timeout")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[PAYMENT] Verifier call failed: {e}")
            return VerificationResult.unverified("verifier_error")

        logger.info(f"[PAYMENT] Verifier scored screenshot: confidence={result.confidence:.2f} "
                    f"genuine={result.is_genuine}")
        return result
