from sqlalchemy import Boolean, Column, Integer, String, DateTime, JSON, event

from models.base import Base


class VerificationRecord(Base):
    """
    One persisted verdict per pipeline run (success or failure).
    Rows are never updated or deleted: this table is the audit trail.
    """
    __tablename__ = "verification_records"

    id = Column(Integer, primary_key=True)
    verification_id = Column(String(36), unique=True, index=True, nullable=False)
    invoice_id = Column(String(140), index=True, nullable=False)
    document_hash = Column(String(255), nullable=False)

    is_valid = Column(Boolean, nullable=False)
    risk_score = Column(Integer, nullable=False)  # unbounded upward
    credit_rating = Column(String(8), index=True, nullable=False)

    # {"documentIntegrity": bool, "sanctionsCheck": "...", ...}
    checks = Column(JSON, nullable=False, default=dict)
    details = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)

    policy_version = Column(String(32), nullable=False)
    input_hash = Column(String(64), index=True, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    processing_time_ms = Column(Integer, nullable=False, default=0)
    verified_at = Column(DateTime(timezone=True), index=True, nullable=False)


@event.listens_for(VerificationRecord, "before_update")
def _record_is_immutable(mapper, connection, target):
    raise ValueError(f"VerificationRecord {target.verification_id} is immutable")


@event.listens_for(VerificationRecord, "before_delete")
def _record_is_append_only(mapper, connection, target):
    raise ValueError(f"VerificationRecord {target.verification_id} cannot be deleted")
