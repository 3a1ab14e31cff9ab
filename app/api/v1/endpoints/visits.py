# app/api/v1/endpoints/visits.py
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.tenant_context import TenantContext
from app.dependencies.authz import FRONT_DESK_ROLES, require_roles, require_tenant_user
from app.models.queue_item import QueueItem
from app.models.visit import Visit
from app.schemas.queue import QueueItemResponse
from app.schemas.user import DoctorSummary
from app.schemas.visit import (
    SkipTriageRequest,
    VisitAdvanceRequest,
    VisitCreate,
    VisitResponse,
    VisitWithQueueItemResponse,
)
from app.services import visit_service

router = APIRouter()


def _build_response(visit: Visit, queue_item: QueueItem) -> VisitWithQueueItemResponse:
    return VisitWithQueueItemResponse(
        visit=VisitResponse.model_validate(visit),
        queue_item=QueueItemResponse.from_item(queue_item),
    )


@router.post(
    "",
    response_model=VisitWithQueueItemResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_visit(
    payload: VisitCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> VisitWithQueueItemResponse:
    """
    Check a patient in and queue them.

    Rules:
    - patient_identifier is a patient UUID or a display code (PID-<SUB>-<TAIL>)
    - skip_triage=true: visit goes straight to the doctor queue as urgent
    - otherwise the patient waits at reception (standard unless priority is given)
    """
    visit, queue_item = visit_service.create_visit(
        db,
        ctx,
        patient_identifier=payload.patient_identifier,
        skip_triage=payload.skip_triage,
        priority=payload.priority,
        doctor_id=payload.doctor_id,
    )
    return _build_response(visit, queue_item)


@router.get("/available-doctors", response_model=list[DoctorSummary])
def available_doctors(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_tenant_user),
) -> list[DoctorSummary]:
    """
    Active doctors of the current tenant, for the check-in doctor picker.
    """
    doctors = visit_service.list_available_doctors(db, ctx.tenant_id)
    return [DoctorSummary.model_validate(d) for d in doctors]


@router.patch("/{visit_id}/skip-triage", response_model=VisitWithQueueItemResponse)
def skip_triage(
    visit_id: UUID,
    payload: SkipTriageRequest | None = None,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> VisitWithQueueItemResponse:
    """
    Move an existing visit directly to the doctor queue.
    """
    payload = payload or SkipTriageRequest()
    visit, queue_item = visit_service.skip_triage(
        db,
        ctx,
        visit_id,
        doctor_id=payload.doctor_id,
        priority=payload.priority,
    )
    return _build_response(visit, queue_item)


@router.post("/{visit_id}/advance", response_model=VisitWithQueueItemResponse)
def advance_visit(
    visit_id: UUID,
    payload: VisitAdvanceRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> VisitWithQueueItemResponse:
    """
    Advance a visit to triage, doctor or billing, queueing it at that stage.
    """
    visit, queue_item = visit_service.advance_visit(
        db,
        ctx,
        visit_id,
        payload.to_stage,
        doctor_id=payload.doctor_id,
    )
    return _build_response(visit, queue_item)
