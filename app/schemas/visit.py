# app/schemas/visit.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, field_validator

from app.models.queue_item import QueuePriority
from app.models.visit import VisitStatus
from app.schemas.queue import QueueItemResponse


class VisitCreate(BaseModel):
    # Canonical patient UUID or a display code such as PID-APOLLO-3F9A2C
    patient_identifier: str
    skip_triage: bool = False
    priority: QueuePriority | None = None
    doctor_id: UUID | None = None

    @field_validator("patient_identifier")
    @classmethod
    def validate_patient_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("patient_identifier is required")
        return v


class SkipTriageRequest(BaseModel):
    doctor_id: UUID | None = None
    priority: QueuePriority = QueuePriority.URGENT


class VisitAdvanceRequest(BaseModel):
    to_stage: str  # triage | doctor | billing
    doctor_id: UUID | None = None


class VisitResponse(BaseModel):
    id: UUID
    patient_id: UUID
    visit_number: str
    status: VisitStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VisitWithQueueItemResponse(BaseModel):
    visit: VisitResponse
    queue_item: QueueItemResponse | None
