# app/schemas/queue.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.queue_item import QueueItem, QueuePriority, QueueStage, QueueStatus


def _person_name(first_name: str | None, last_name: str | None) -> str | None:
    name = f"{first_name or ''} {last_name or ''}".strip()
    return name or None


class QueueItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    visit_id: UUID
    stage: QueueStage
    priority: QueuePriority
    token_number: str
    assigned_doctor_id: UUID | None
    status: QueueStatus
    created_at: datetime
    updated_at: datetime

    # Computed fields for the reception / doctor screens
    visit_number: str | None = None
    patient_id: UUID | None = None
    patient_name: str | None = None
    doctor_name: str | None = None

    @classmethod
    def from_item(cls, item: QueueItem) -> QueueItemResponse:
        response = cls.model_validate(item)
        if item.visit is not None:
            response.visit_number = item.visit.visit_number
            response.patient_id = item.visit.patient_id
            if item.visit.patient is not None:
                response.patient_name = item.visit.patient.full_name
        if item.assigned_doctor is not None:
            response.doctor_name = _person_name(item.assigned_doctor.first_name, item.assigned_doctor.last_name)
        return response


class QueueBoardEntry(BaseModel):
    """
    What a TV display shows. No patient identity beyond the token.
    """

    id: UUID
    token_number: str
    stage: QueueStage
    priority: QueuePriority
    status: QueueStatus
    created_at: datetime
    doctor_name: str | None = None

    @classmethod
    def from_item(cls, item: QueueItem) -> QueueBoardEntry:
        doctor = item.assigned_doctor
        return cls(
            id=item.id,
            token_number=item.token_number,
            stage=item.stage,
            priority=item.priority,
            status=item.status,
            created_at=item.created_at,
            doctor_name=_person_name(doctor.first_name, doctor.last_name) if doctor else None,
        )
