# app/api/v1/endpoints/triage.py
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.tenant_context import TenantContext
from app.dependencies.authz import CLINICAL_ROLES, require_roles, require_tenant_user
from app.schemas.triage import TriageResponse, TriageUpsert
from app.services.triage_service import get_triage, upsert_triage

router = APIRouter()


@router.patch("/{visit_id}", response_model=TriageResponse)
def save_triage(
    visit_id: UUID,
    payload: TriageUpsert,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(CLINICAL_ROLES)),
) -> TriageResponse:
    """
    Upsert triage observations (vitals, symptoms, priority, notes) for a visit.

    Only DOCTOR/NURSE (and admins) can record triage.
    """
    triage = upsert_triage(db, ctx.tenant_id, visit_id, payload)
    return TriageResponse.model_validate(triage)


@router.get("/{visit_id}", response_model=TriageResponse | None)
def read_triage(
    visit_id: UUID,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_tenant_user),
) -> TriageResponse | None:
    """
    Triage record of a visit, or null if none was recorded yet.
    """
    triage = get_triage(db, ctx.tenant_id, visit_id)
    if triage is None:
        return None
    return TriageResponse.model_validate(triage)
