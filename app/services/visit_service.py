# app/services/visit_service.py
"""
Visit lifecycle: check-in, triage fast path, stage advancement.

States: created -> triage -> with_doctor -> awaiting_billing -> closed.
Triage may be skipped (created straight into with_doctor, or forced
there from created/triage). Every lookup is tenant-scoped: a visit of
another tenant is reported exactly like a missing one.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import String, cast, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationFailed
from app.core.tenant_context import TenantContext
from app.models.patient import Patient
from app.models.queue_item import ACTIVE_QUEUE_STATUSES, QueueItem, QueuePriority, QueueStage, QueueStatus
from app.models.user import RoleName, User
from app.models.visit import Visit, VisitStatus
from app.services.queue_service import invalidate_board
from app.services.sequence_service import mint_numbers
from app.utils.datetime_utils import utc_now
from app.utils.id_generators import parse_patient_display_code

logger = logging.getLogger(__name__)

# advance target stage -> visit status
ADVANCE_STATUS_BY_STAGE = {
    QueueStage.TRIAGE: VisitStatus.TRIAGE,
    QueueStage.DOCTOR: VisitStatus.WITH_DOCTOR,
    QueueStage.BILLING: VisitStatus.AWAITING_BILLING,
}

SKIP_TRIAGE_FROM = (VisitStatus.CREATED, VisitStatus.TRIAGE, VisitStatus.WITH_DOCTOR)

# Stages a fast-tracked patient leaves behind without being served
PRE_DOCTOR_STAGES = (QueueStage.RECEPTION, QueueStage.TRIAGE)


def resolve_patient(db: Session, tenant_id: UUID, identifier: str) -> Patient:
    """
    Find a tenant's patient by canonical UUID or display code.

    Display codes look like PID-<SUB>-<TAIL> or PID-<TAIL>, where TAIL
    (6+ characters, case-insensitive) is the end of the dash-less UUID.
    Several matches resolve to the most recently created patient.
    """
    raw = identifier.strip()
    try:
        patient_id = UUID(raw)
    except ValueError:
        patient_id = None

    query = db.query(Patient).filter(Patient.tenant_id == tenant_id)
    if patient_id is not None:
        patient = query.filter(Patient.id == patient_id).first()
        if not patient:
            raise NotFound("Patient not found")
        return patient

    tail = parse_patient_display_code(raw)
    if tail is None:
        raise ValidationFailed("Invalid patient identifier")

    # Postgres renders UUIDs with dashes, SQLite stores bare hex; normalize both
    dashless_id = func.replace(func.lower(cast(Patient.id, String)), "-", "")
    patient = (
        query.filter(dashless_id.like(f"%{tail}"))
        .order_by(Patient.created_at.desc())
        .first()
    )
    if not patient:
        raise NotFound("Patient not found for code")
    return patient


def get_visit(db: Session, tenant_id: UUID, visit_id: UUID) -> Visit:
    visit = db.query(Visit).filter(Visit.id == visit_id, Visit.tenant_id == tenant_id).first()
    if not visit:
        raise NotFound("Visit not found")
    return visit


def validated_doctor_id(db: Session, tenant_id: UUID, doctor_id: UUID | None) -> UUID | None:
    """
    Return doctor_id if it names an active doctor of the tenant, else None.

    An invalid doctor is dropped rather than failing the request.
    """
    if doctor_id is None:
        return None
    doctor = (
        db.query(User.id)
        .filter(
            User.id == doctor_id,
            User.tenant_id == tenant_id,
            User.role == RoleName.DOCTOR,
            User.is_active.is_(True),
        )
        .first()
    )
    if not doctor:
        logger.info("Ignoring doctor assignment %s: not an active doctor of tenant %s", doctor_id, tenant_id)
        return None
    return doctor_id


def list_available_doctors(db: Session, tenant_id: UUID) -> list[User]:
    return (
        db.query(User)
        .filter(
            User.tenant_id == tenant_id,
            User.role == RoleName.DOCTOR,
            User.is_active.is_(True),
        )
        .order_by(User.first_name.asc(), User.last_name.asc())
        .all()
    )


def _active_item(db: Session, tenant_id: UUID, visit_id: UUID, stage: QueueStage) -> QueueItem | None:
    return (
        db.query(QueueItem)
        .filter(
            QueueItem.tenant_id == tenant_id,
            QueueItem.visit_id == visit_id,
            QueueItem.stage == stage,
            QueueItem.status.in_(ACTIVE_QUEUE_STATUSES),
        )
        .order_by(QueueItem.created_at.desc())
        .first()
    )


def create_visit(
    db: Session,
    ctx: TenantContext,
    *,
    patient_identifier: str,
    skip_triage: bool = False,
    priority: QueuePriority | None = None,
    doctor_id: UUID | None = None,
) -> tuple[Visit, QueueItem]:
    """
    Check a patient in: mint numbers, create the visit and its first queue item.

    - skip_triage: visit starts with_doctor, queued at the doctor stage as urgent
    - otherwise: visit starts created, queued at reception (standard unless given)
    The visit, its queue item and the counter bump commit together.
    """
    tenant_id = ctx.tenant_id
    patient = resolve_patient(db, tenant_id, patient_identifier)

    if skip_triage:
        status_value = VisitStatus.WITH_DOCTOR
        stage = QueueStage.DOCTOR
        queue_priority = QueuePriority.URGENT
        assigned_doctor_id = validated_doctor_id(db, tenant_id, doctor_id)
    else:
        status_value = VisitStatus.CREATED
        stage = QueueStage.RECEPTION
        queue_priority = priority or QueuePriority.STANDARD
        assigned_doctor_id = None

    try:
        numbers = mint_numbers(db, ctx.tenant)
        visit = Visit(
            tenant_id=tenant_id,
            patient_id=patient.id,
            visit_number=numbers.visit_number,
            status=status_value,
        )
        db.add(visit)
        db.flush()

        queue_item = QueueItem(
            tenant_id=tenant_id,
            visit_id=visit.id,
            stage=stage,
            priority=queue_priority,
            token_number=numbers.token_number,
            status=QueueStatus.WAITING,
            assigned_doctor_id=assigned_doctor_id,
        )
        db.add(queue_item)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Visit %s created tenant=%s stage=%s token=%s",
        visit.visit_number,
        tenant_id,
        stage.value,
        queue_item.token_number,
    )
    invalidate_board(tenant_id, [stage])
    db.refresh(visit)
    db.refresh(queue_item)
    return visit, queue_item


def skip_triage(
    db: Session,
    ctx: TenantContext,
    visit_id: UUID,
    *,
    doctor_id: UUID | None = None,
    priority: QueuePriority = QueuePriority.URGENT,
) -> tuple[Visit, QueueItem]:
    """
    Fast-path an existing visit to the doctor stage.

    Reuses the visit's active doctor-stage item if it has one (updating
    priority and doctor), otherwise queues a new one. Items still waiting
    at reception/triage are marked skipped.
    """
    tenant_id = ctx.tenant_id
    visit = get_visit(db, tenant_id, visit_id)
    if visit.status not in SKIP_TRIAGE_FROM:
        raise ValidationFailed(f"Cannot skip triage for a visit that is {visit.status.value}")

    assigned_doctor_id = validated_doctor_id(db, tenant_id, doctor_id)

    try:
        visit.status = VisitStatus.WITH_DOCTOR

        db.execute(
            update(QueueItem)
            .where(
                QueueItem.tenant_id == tenant_id,
                QueueItem.visit_id == visit.id,
                QueueItem.stage.in_(PRE_DOCTOR_STAGES),
                QueueItem.status == QueueStatus.WAITING,
            )
            .values(status=QueueStatus.SKIPPED, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )

        queue_item = _active_item(db, tenant_id, visit.id, QueueStage.DOCTOR)
        if queue_item is not None:
            queue_item.priority = priority
            if assigned_doctor_id:
                queue_item.assigned_doctor_id = assigned_doctor_id
        else:
            numbers = mint_numbers(db, ctx.tenant, include_visit=False)
            queue_item = QueueItem(
                tenant_id=tenant_id,
                visit_id=visit.id,
                stage=QueueStage.DOCTOR,
                priority=priority,
                token_number=numbers.token_number,
                status=QueueStatus.WAITING,
                assigned_doctor_id=assigned_doctor_id,
            )
            db.add(queue_item)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    invalidate_board(tenant_id, [*PRE_DOCTOR_STAGES, QueueStage.DOCTOR])
    db.refresh(visit)
    db.refresh(queue_item)
    return visit, queue_item


def advance_visit(
    db: Session,
    ctx: TenantContext,
    visit_id: UUID,
    to_stage: str,
    *,
    doctor_id: UUID | None = None,
) -> tuple[Visit, QueueItem]:
    """
    Move a visit to triage, doctor or billing and queue it there.

    A fresh token is minted for the new stage item (standard priority).
    If the visit already has an active item at that stage, it is returned
    instead so a stage never holds two live items for one visit.
    """
    try:
        stage = QueueStage(str(to_stage).strip().lower())
    except ValueError:
        stage = None
    if stage not in ADVANCE_STATUS_BY_STAGE:
        raise ValidationFailed("Invalid to_stage; expected one of: triage, doctor, billing")

    tenant_id = ctx.tenant_id
    visit = get_visit(db, tenant_id, visit_id)
    if visit.status == VisitStatus.CLOSED:
        raise ValidationFailed("Visit is closed")

    assigned_doctor_id = None
    if stage == QueueStage.DOCTOR:
        assigned_doctor_id = validated_doctor_id(db, tenant_id, doctor_id)

    try:
        visit.status = ADVANCE_STATUS_BY_STAGE[stage]

        queue_item = _active_item(db, tenant_id, visit.id, stage)
        if queue_item is not None:
            logger.info("Visit %s already queued at %s; reusing %s", visit.visit_number, stage.value, queue_item.token_number)
        else:
            numbers = mint_numbers(db, ctx.tenant, include_visit=False)
            queue_item = QueueItem(
                tenant_id=tenant_id,
                visit_id=visit.id,
                stage=stage,
                priority=QueuePriority.STANDARD,
                token_number=numbers.token_number,
                status=QueueStatus.WAITING,
                assigned_doctor_id=assigned_doctor_id,
            )
            db.add(queue_item)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    invalidate_board(tenant_id, [stage])
    db.refresh(visit)
    db.refresh(queue_item)
    return visit, queue_item
