# app/services/triage_service.py
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.triage import Triage
from app.schemas.triage import TriageUpsert
from app.services.visit_service import get_visit

logger = logging.getLogger(__name__)


def get_triage(db: Session, tenant_id: UUID, visit_id: UUID) -> Triage | None:
    return (
        db.query(Triage)
        .filter(Triage.visit_id == visit_id, Triage.tenant_id == tenant_id)
        .first()
    )


def _apply(triage: Triage, update_data: dict) -> None:
    for field, value in update_data.items():
        setattr(triage, field, value)


def upsert_triage(
    db: Session,
    tenant_id: UUID,
    visit_id: UUID,
    payload: TriageUpsert,
) -> Triage:
    """
    Create or update the triage record of a visit.

    Only fields present and non-null in the payload overwrite stored values.
    If another clinician inserts the first record concurrently, the unique
    visit_id index rejects ours and the update is re-applied to theirs.
    """
    get_visit(db, tenant_id, visit_id)
    update_data = payload.model_dump(exclude_none=True, mode="json")

    triage = get_triage(db, tenant_id, visit_id)
    if triage is None:
        triage = Triage(tenant_id=tenant_id, visit_id=visit_id)
        db.add(triage)
    _apply(triage, update_data)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Triage for visit %s was created concurrently; updating it instead", visit_id)
        triage = get_triage(db, tenant_id, visit_id)
        if triage is None:
            raise
        _apply(triage, update_data)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(triage)
    return triage
