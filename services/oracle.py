from datetime import timezone

from core.config import settings
from models.verification import VerificationRecord


SEPARATOR = "|"


def _fit_utf8(text: str, max_bytes: int) -> str:
    """Truncate to at most max_bytes of UTF-8 without splitting a character."""
    if max_bytes <= 0:
        return ""
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    return raw[:max_bytes].decode("utf-8", errors="ignore")


def encode_payload(
    record: VerificationRecord,
    *,
    max_bytes: int | None = None,
    max_score: int | None = None,
) -> str:
    """
    Compact on-chain payload: "<valid>|<score>|<rating>|<details>|<unix_ts>".

    Only the detail text is truncated to respect the byte budget; the score
    saturates at `max_score` so it always fits the consumer's integer field.
    """
    max_bytes = settings.ORACLE_PAYLOAD_MAX_BYTES if max_bytes is None else max_bytes
    max_score = settings.ORACLE_MAX_RISK_SCORE if max_score is None else max_score

    verified_at = record.verified_at
    if verified_at.tzinfo is None:
        verified_at = verified_at.replace(tzinfo=timezone.utc)

    valid = "1" if record.is_valid else "0"
    score = str(min(int(record.risk_score), max_score))
    rating = str(record.credit_rating)
    ts = str(int(verified_at.timestamp()))

    detail = "; ".join(record.details or []).replace(SEPARATOR, "/")

    fixed = SEPARATOR.join([valid, score, rating, "", ts])
    budget = max_bytes - len(fixed.encode("utf-8"))
    if budget < 0:
        raise ValueError(f"oracle payload budget {max_bytes} too small for fixed fields")

    detail = _fit_utf8(detail, budget)
    return SEPARATOR.join([valid, score, rating, detail, ts])
