# app/models/queue_item.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, enum_values
from app.models.user import User
from app.models.visit import Visit
from app.utils.datetime_utils import utc_now

class QueueStage(str, PyEnum):
    RECEPTION = "reception"
    TRIAGE = "triage"
    DOCTOR = "doctor"
    PHARMACY = "pharmacy"
    LAB = "lab"
    BILLING = "billing"

class QueuePriority(str, PyEnum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    STANDARD = "standard"

class QueueStatus(str, PyEnum):
    WAITING = "waiting"
    CALLED = "called"
    SERVED = "served"
    SKIPPED = "skipped"

# waiting/called items are the live line; served/skipped are history
ACTIVE_QUEUE_STATUSES = (QueueStatus.WAITING, QueueStatus.CALLED)

class QueueItem(Base):
    """
    A visit's place in one stage's waiting line.

    Status only moves forward: waiting -> called -> served, or
    waiting -> skipped. Rows are kept after the visit leaves the stage.
    """

    __tablename__ = "queue_items"
    __table_args__ = (
        Index("ix_queue_items_tenant_stage_status", "tenant_id", "stage", "status"),
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
    visit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("visits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    stage: Mapped[QueueStage] = mapped_column(
        Enum(QueueStage, name="queue_stage_enum", native_enum=False, length=32, values_callable=enum_values),
        nullable=False,
    )
    priority: Mapped[QueuePriority] = mapped_column(
        Enum(QueuePriority, name="queue_priority_enum", native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=QueuePriority.STANDARD,
    )
    token_number: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Human-readable T-{ORGCODE}-{YYMMDD}-{NNNN}",
    )
    assigned_doctor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[QueueStatus] = mapped_column(
        Enum(QueueStatus, name="queue_status_enum", native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=QueueStatus.WAITING,
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

    visit: Mapped["Visit"] = relationship("Visit")
    assigned_doctor: Mapped["User"] = relationship("User")
