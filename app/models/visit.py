# app/models/visit.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, enum_values
from app.models.patient import Patient
from app.utils.datetime_utils import utc_now

class VisitStatus(str, PyEnum):
    CREATED = "created"
    TRIAGE = "triage"
    WITH_DOCTOR = "with_doctor"
    AWAITING_BILLING = "awaiting_billing"
    CLOSED = "closed"

VISIT_STATUS_ENUM = Enum(
    VisitStatus,
    name="visit_status_enum",
    native_enum=False,
    length=32,
    values_callable=enum_values,
)

class Visit(Base):
    """
    One patient's episode of care, from check-in to closure.

    Never deleted: CLOSED is terminal and kept for audit.
    """

    __tablename__ = "visits"
    __table_args__ = (
        Index("uq_visits_tenant_visit_number", "tenant_id", "visit_number", unique=True),
        Index("ix_visits_tenant_status", "tenant_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    visit_number: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Human-readable V-{ORGCODE}-{YYMMDD}-{NNNN}",
    )
    status: Mapped[VisitStatus] = mapped_column(
        VISIT_STATUS_ENUM,
        nullable=False,
        default=VisitStatus.CREATED,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=utc_now,
    )

    patient: Mapped["Patient"] = relationship("Patient")
