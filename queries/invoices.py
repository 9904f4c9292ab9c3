from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import AuditPersistenceError
from models.invoice import InvoiceSnapshot


def save_snapshot(db: Session, snapshot: InvoiceSnapshot) -> InvoiceSnapshot:
    """
    Append one invoice snapshot. Never merges with earlier submissions.
    """
    try:
        db.add(snapshot)
        db.commit()
        db.refresh(snapshot)
        return snapshot

    except SQLAlchemyError as e:
        db.rollback()
        raise AuditPersistenceError("invoice snapshot", snapshot.verification_id, e) from e

