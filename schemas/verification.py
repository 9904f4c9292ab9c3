from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import field_validator

from schemas.common import CamelModel
from schemas.invoice import InvoiceDetailsIn


class ChecksOut(CamelModel):
    document_integrity: bool
    sanctions_check: str   # CLEAR | FLAGGED | ERROR
    fraud_check: str       # PASSED | FAILED | ERROR
    commodity_check: str   # APPROVED | REJECTED | ERROR
    entity_verification: str  # VERIFIED | ERROR


class VerdictOut(CamelModel):
    verification_id: str
    invoice_id: str
    document_hash: str

    is_valid: bool
    risk_score: int
    credit_rating: str
    checks: ChecksOut
    details: List[str] = []
    recommendations: List[str] = []

    policy_version: str
    input_hash: str
    processing_time_ms: int
    verified_at: datetime

    @field_validator("verified_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # sqlite drops tzinfo; everything is stored in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class VerifyResponse(VerdictOut):
    """Verdict plus caller-side annotations for POST verify-documents."""
    invoice_details: Optional[InvoiceDetailsIn] = None
    processing_time: Optional[str] = None  # e.g. "12ms"


class ErrorEnvelope(CamelModel):
    message: str
    verification_id: Optional[str] = None
    timestamp: str


class StatsOut(CamelModel):
    total: int
    valid_count: int
    invalid_count: int
    validation_rate: str
    average_risk_score: float
    rating_distribution: Dict[str, int] = {}


class OraclePayloadOut(CamelModel):
    verification_id: str
    payload: str
    byte_length: int
