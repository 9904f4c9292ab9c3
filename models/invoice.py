from sqlalchemy import Column, Integer, String, DateTime, JSON, event

from models.base import Base


class InvoiceSnapshot(Base):
    """
    Invoice data exactly as supplied to one verification call.
    One row per call; resubmissions are NOT deduplicated.
    """
    __tablename__ = "invoice_snapshots"

    id = Column(Integer, primary_key=True)
    verification_id = Column(String(36), unique=True, index=True, nullable=False)
    invoice_id = Column(String(140), index=True, nullable=False)  # external id, not unique
    document_hash = Column(String(255), nullable=False)

    commodity = Column(String(140), nullable=False)
    amount = Column(String(40), nullable=False)  # integer string, smallest unit
    supplier_country = Column(String(140), nullable=False)
    buyer_country = Column(String(140), nullable=False)
    exporter_name = Column(String(255), nullable=False)
    buyer_name = Column(String(255), nullable=False)

    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)


@event.listens_for(InvoiceSnapshot, "before_update")
def _snapshot_is_immutable(mapper, connection, target):
    raise ValueError(f"InvoiceSnapshot {target.verification_id} is immutable")


@event.listens_for(InvoiceSnapshot, "before_delete")
def _snapshot_is_append_only(mapper, connection, target):
    raise ValueError(f"InvoiceSnapshot {target.verification_id} cannot be deleted")
