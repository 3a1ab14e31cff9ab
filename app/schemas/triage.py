# app/schemas/triage.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, field_validator

from app.models.queue_item import QueuePriority


class TriageVitals(BaseModel):
    temperature: float | None = None
    systolic: float | None = None
    diastolic: float | None = None
    heart_rate: float | None = None
    spo2: float | None = None
    weight: float | None = None
    height: float | None = None

    @field_validator("systolic", "diastolic")
    @classmethod
    def validate_bp(cls, v: float | None) -> float | None:
        if v is not None and (v < 0 or v > 300):
            raise ValueError("Blood pressure must be between 0 and 300")
        return v

    @field_validator("heart_rate")
    @classmethod
    def validate_heart_rate(cls, v: float | None) -> float | None:
        if v is not None and (v < 0 or v > 300):
            raise ValueError("Heart rate must be between 0 and 300")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float | None) -> float | None:
        if v is not None and (v < 30 or v > 45):
            raise ValueError("Temperature must be between 30 and 45 degrees Celsius")
        return v

    @field_validator("spo2")
    @classmethod
    def validate_spo2(cls, v: float | None) -> float | None:
        if v is not None and (v < 0 or v > 100):
            raise ValueError("SpO2 must be between 0 and 100")
        return v


class TriageUpsert(BaseModel):
    vitals: TriageVitals | None = None
    symptoms: str | None = None
    allergies: str | None = None
    current_meds: str | None = None
    pain_scale: int | None = None
    priority: QueuePriority | None = None
    notes: str | None = None

    @field_validator("pain_scale")
    @classmethod
    def validate_pain_scale(cls, v: int | None) -> int | None:
        if v is not None and (v < 0 or v > 10):
            raise ValueError("Pain scale must be between 0 and 10")
        return v


class TriageResponse(BaseModel):
    id: UUID
    visit_id: UUID
    vitals: dict | None
    symptoms: str | None
    allergies: str | None
    current_meds: str | None
    pain_scale: int | None
    priority: QueuePriority | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
