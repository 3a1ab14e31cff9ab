# app/api/v1/endpoints/queue.py
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.tenant_context import TenantContext, get_tenant_context
from app.dependencies.authz import FRONT_DESK_ROLES, require_feature, require_roles, require_tenant_user
from app.models.queue_item import QueueStage
from app.schemas.queue import QueueBoardEntry, QueueItemResponse
from app.services import queue_service

router = APIRouter()

queue_enabled = require_feature("enable_queue", "Queue")
board_enabled = require_feature("enable_tv_display", "TV display")


@router.get("", response_model=list[QueueItemResponse], dependencies=[Depends(queue_enabled)])
def list_queue(
    stage: QueueStage = Query(..., description="Queue stage"),
    doctor_id: UUID | None = Query(None, description="Doctor stage only: unassigned items plus this doctor's"),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_tenant_user),
) -> list[QueueItemResponse]:
    """
    Waiting and called items of a stage.
    Ordered by priority (emergency, urgent, standard), then arrival.
    """
    items = queue_service.list_queue(db, ctx.tenant_id, stage, doctor_id)
    return [QueueItemResponse.from_item(item) for item in items]


@router.get("/board", response_model=list[QueueBoardEntry], dependencies=[Depends(board_enabled)])
def queue_board(
    stage: QueueStage = Query(..., description="Queue stage"),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[QueueBoardEntry]:
    """
    Read-only queue feed for TV displays. Works without a logged-in user.
    """
    return queue_service.get_board(db, ctx.tenant_id, stage)


@router.post("/call-next", response_model=QueueItemResponse | None, dependencies=[Depends(queue_enabled)])
def call_next(
    stage: QueueStage = Query(..., description="Queue stage"),
    doctor_id: UUID | None = Query(None, description="Doctor claiming the patient (doctor stage)"),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> QueueItemResponse | None:
    """
    Atomically claim the next waiting item of a stage.

    On the doctor stage with doctor_id, only unassigned items and items
    already assigned to that doctor are candidates, so a doctor never
    takes a colleague's patient; the claimed item is assigned to them.
    Without doctor_id the whole stage is considered.

    Returns null when nothing is waiting or another station claimed it first.
    """
    item = queue_service.call_next(db, ctx.tenant_id, stage, doctor_id)
    if item is None:
        return None
    return QueueItemResponse.from_item(item)


@router.post("/{item_id}/call", response_model=QueueItemResponse, dependencies=[Depends(queue_enabled)])
def call_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> QueueItemResponse:
    """
    Call a specific patient out of queue order.
    """
    return QueueItemResponse.from_item(queue_service.call_item(db, ctx.tenant_id, item_id))


@router.post("/{item_id}/serve", response_model=QueueItemResponse, dependencies=[Depends(queue_enabled)])
def serve_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> QueueItemResponse:
    return QueueItemResponse.from_item(queue_service.serve_item(db, ctx.tenant_id, item_id))


@router.post("/{item_id}/skip", response_model=QueueItemResponse, dependencies=[Depends(queue_enabled)])
def skip_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(require_roles(FRONT_DESK_ROLES)),
) -> QueueItemResponse:
    return QueueItemResponse.from_item(queue_service.skip_item(db, ctx.tenant_id, item_id))
