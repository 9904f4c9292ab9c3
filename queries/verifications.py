from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import AuditPersistenceError
from models.verification import VerificationRecord


# Append-only Audit Store: there is deliberately no update/delete helper here.


def save_verdict(db: Session, record: VerificationRecord) -> VerificationRecord:
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    except SQLAlchemyError as e:
        db.rollback()
        raise AuditPersistenceError("verification record", record.verification_id, e) from e


def get_verdict(db: Session, verification_id: str) -> VerificationRecord | None:
    return (
        db.query(VerificationRecord)
        .filter(VerificationRecord.verification_id == verification_id)
        .first()
    )


def list_history(db: Session, invoice_id: str, limit: int = 500) -> list[VerificationRecord]:
    # newest first; id breaks ties between identical timestamps
    return (
        db.query(VerificationRecord)
        .filter(VerificationRecord.invoice_id == invoice_id)
        .order_by(VerificationRecord.verified_at.desc(), VerificationRecord.id.desc())
        .limit(limit)
        .all()
    )


def aggregate_stats(db: Session) -> dict:
    """
    Audit analytics:
    - total / valid counts
    - average risk score
    - count per credit rating
    """
    total = db.query(func.count(VerificationRecord.id)).scalar() or 0
    valid = (
        db.query(func.count(VerificationRecord.id))
        .filter(VerificationRecord.is_valid.is_(True))
        .scalar()
        or 0
    )
    avg_risk = db.query(func.avg(VerificationRecord.risk_score)).scalar()

    rows = (
        db.query(VerificationRecord.credit_rating, func.count(VerificationRecord.id))
        .group_by(VerificationRecord.credit_rating)
        .order_by(VerificationRecord.credit_rating)
        .all()
    )

    return {
        "total": int(total),
        "valid_count": int(valid),
        "average_risk_score": round(float(avg_risk), 2) if avg_risk is not None else 0.0,
        "rating_distribution": {rating: int(count) for rating, count in rows},
    }
