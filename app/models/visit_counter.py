# app/models/visit_counter.py
import uuid

from sqlalchemy import ForeignKey, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

class VisitCounter(Base):
    """
    Per-(tenant, day) sequence state for visit and token numbers.

    The only row mutated under contention; it must only ever be
    incremented by a single atomic statement (see sequence_service).
    Rows appear on first use each day and are never deleted.
    """

    __tablename__ = "visit_counters"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    date_key: Mapped[str] = mapped_column(
        String(8),
        primary_key=True,
        doc="Facility-local YYYYMMDD",
    )

    next_visit_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
    )
    next_token_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
    )
