# app/services/queue_service.py
"""
Stage-scoped, priority-ordered waiting lines.

Ordering everywhere: emergency > urgent > standard, then oldest first.
Every status change is a conditional UPDATE guarded on the current
status, so concurrent stations can never move an item twice.
"""

from __future__ import annotations

import logging
from typing import Iterable
from uuid import UUID

from pydantic import TypeAdapter
from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from app.core.config import get_settings
from app.core.exceptions import NotFound, ValidationFailed
from app.core.redis import cache_delete, cache_get, cache_set
from app.models.queue_item import (
    ACTIVE_QUEUE_STATUSES,
    QueueItem,
    QueuePriority,
    QueueStage,
    QueueStatus,
)
from app.models.visit import Visit
from app.schemas.queue import QueueBoardEntry
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

PRIORITY_RANK = case(
    (QueueItem.priority == QueuePriority.EMERGENCY, 0),
    (QueueItem.priority == QueuePriority.URGENT, 1),
    else_=2,
)

# Queue order: priority class, arrival, then token (monotonic within a day)
QUEUE_ORDER = (PRIORITY_RANK, QueueItem.created_at.asc(), QueueItem.token_number.asc())

_board_adapter = TypeAdapter(list[QueueBoardEntry])


def _board_cache_key(tenant_id: UUID, stage: QueueStage) -> str:
    return f"queue_board:{tenant_id}:{QueueStage(stage).value}"


def invalidate_board(tenant_id: UUID, stages: Iterable[QueueStage]) -> None:
    for stage in set(stages):
        cache_delete(_board_cache_key(tenant_id, stage))


def _doctor_filter(stage: QueueStage, doctor_id: UUID | None):
    if stage == QueueStage.DOCTOR and doctor_id:
        return or_(QueueItem.assigned_doctor_id.is_(None), QueueItem.assigned_doctor_id == doctor_id)
    return None


def _active_items_query(db: Session, tenant_id: UUID, stage: QueueStage) -> Query:
    return (
        db.query(QueueItem)
        .filter(
            QueueItem.tenant_id == tenant_id,
            QueueItem.stage == stage,
            QueueItem.status.in_(ACTIVE_QUEUE_STATUSES),
        )
        .order_by(*QUEUE_ORDER)
    )


def list_queue(
    db: Session,
    tenant_id: UUID,
    stage: QueueStage,
    doctor_id: UUID | None = None,
) -> list[QueueItem]:
    """
    Waiting and called items of a stage, in queue order.

    For the doctor stage with doctor_id, only unassigned items and items
    assigned to that doctor are returned.
    """
    query = _active_items_query(db, tenant_id, stage).options(
        joinedload(QueueItem.visit).joinedload(Visit.patient),
        joinedload(QueueItem.assigned_doctor),
    )
    doctor_clause = _doctor_filter(stage, doctor_id)
    if doctor_clause is not None:
        query = query.filter(doctor_clause)
    return query.all()


def _pick_next_id(
    db: Session,
    tenant_id: UUID,
    stage: QueueStage,
    doctor_id: UUID | None,
) -> UUID | None:
    stmt = (
        select(QueueItem.id)
        .where(
            QueueItem.tenant_id == tenant_id,
            QueueItem.stage == stage,
            QueueItem.status == QueueStatus.WAITING,
        )
        .order_by(*QUEUE_ORDER)
        .limit(1)
    )
    doctor_clause = _doctor_filter(stage, doctor_id)
    if doctor_clause is not None:
        stmt = stmt.where(doctor_clause)
    return db.execute(stmt).scalar_one_or_none()


def _claim(
    db: Session,
    tenant_id: UUID,
    stage: QueueStage,
    item_id: UUID,
    doctor_id: UUID | None,
) -> bool:
    """
    waiting -> called, only if the row is still waiting. Returns whether
    this caller won the row.
    """
    values = {"status": QueueStatus.CALLED, "updated_at": utc_now()}
    if stage == QueueStage.DOCTOR and doctor_id:
        values["assigned_doctor_id"] = doctor_id

    stmt = (
        update(QueueItem)
        .where(
            QueueItem.id == item_id,
            QueueItem.tenant_id == tenant_id,
            QueueItem.stage == stage,
            QueueItem.status == QueueStatus.WAITING,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    doctor_clause = _doctor_filter(stage, doctor_id)
    if doctor_clause is not None:
        stmt = stmt.where(doctor_clause)
    return db.execute(stmt).rowcount == 1


def _get_item(db: Session, tenant_id: UUID, item_id: UUID) -> QueueItem:
    item = (
        db.query(QueueItem)
        .options(
            joinedload(QueueItem.visit).joinedload(Visit.patient),
            joinedload(QueueItem.assigned_doctor),
        )
        .filter(QueueItem.id == item_id, QueueItem.tenant_id == tenant_id)
        .populate_existing()
        .first()
    )
    if not item:
        raise NotFound("Queue item not found")
    return item


def call_next(
    db: Session,
    tenant_id: UUID,
    stage: QueueStage,
    doctor_id: UUID | None = None,
) -> QueueItem | None:
    """
    Claim the highest-priority, oldest waiting item of a stage.

    Returns None when nothing is waiting, and also when another station
    claimed the picked item first. The losing caller is not retried:
    exactly one caller ever gets a given item.
    """
    try:
        item_id = _pick_next_id(db, tenant_id, stage, doctor_id)
        if item_id is None:
            return None

        if not _claim(db, tenant_id, stage, item_id, doctor_id):
            db.rollback()
            logger.info("call-next lost race tenant=%s stage=%s item=%s", tenant_id, stage.value, item_id)
            return None

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("call-next claimed tenant=%s stage=%s item=%s", tenant_id, stage.value, item_id)
    invalidate_board(tenant_id, [stage])
    return _get_item(db, tenant_id, item_id)


def _transition(
    db: Session,
    tenant_id: UUID,
    item_id: UUID,
    *,
    to_status: QueueStatus,
    from_statuses: tuple[QueueStatus, ...],
) -> QueueItem:
    """
    Conditional status change. Re-applying the status an item already has
    is a no-op; any other disallowed move is rejected.
    """
    try:
        result = db.execute(
            update(QueueItem)
            .where(
                QueueItem.id == item_id,
                QueueItem.tenant_id == tenant_id,
                QueueItem.status.in_(from_statuses),
            )
            .values(status=to_status, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    item = _get_item(db, tenant_id, item_id)
    if result.rowcount == 0 and item.status != to_status:
        raise ValidationFailed(
            f"Queue item is {item.status.value}; cannot mark it {to_status.value}"
        )
    if result.rowcount:
        invalidate_board(tenant_id, [item.stage])
    return item


def call_item(db: Session, tenant_id: UUID, item_id: UUID) -> QueueItem:
    """Operator-selected call of a specific item, bypassing queue order."""
    return _transition(
        db,
        tenant_id,
        item_id,
        to_status=QueueStatus.CALLED,
        from_statuses=(QueueStatus.WAITING,),
    )


def serve_item(db: Session, tenant_id: UUID, item_id: UUID) -> QueueItem:
    return _transition(
        db,
        tenant_id,
        item_id,
        to_status=QueueStatus.SERVED,
        from_statuses=(QueueStatus.CALLED,),
    )


def skip_item(db: Session, tenant_id: UUID, item_id: UUID) -> QueueItem:
    # called -> skipped covers patients who never turn up after being called
    return _transition(
        db,
        tenant_id,
        item_id,
        to_status=QueueStatus.SKIPPED,
        from_statuses=(QueueStatus.WAITING, QueueStatus.CALLED),
    )


def get_board(db: Session, tenant_id: UUID, stage: QueueStage) -> list[QueueBoardEntry]:
    """
    Read-only projection of a stage for TV displays, cached briefly in Redis.
    """
    key = _board_cache_key(tenant_id, stage)
    cached = cache_get(key)
    if cached is not None:
        try:
            return _board_adapter.validate_json(cached)
        except ValueError:
            logger.warning("Discarding unreadable board cache entry %s", key)
            cache_delete(key)

    items = _active_items_query(db, tenant_id, stage).options(joinedload(QueueItem.assigned_doctor)).all()
    entries = [QueueBoardEntry.from_item(item) for item in items]
    cache_set(key, _board_adapter.dump_json(entries).decode(), ttl=get_settings().board_cache_ttl_seconds)
    return entries
