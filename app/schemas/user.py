# app/schemas/user.py
from uuid import UUID

from pydantic import BaseModel


class DoctorSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    specialization: str | None = None
    consultation_fee: float | None = None
    experience_years: int | None = None
    department: str | None = None

    class Config:
        from_attributes = True
