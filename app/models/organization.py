# app/models/organization.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.utils.datetime_utils import utc_now

class SubscriptionStatus(str, PyEnum):
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"

BLOCKED_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.SUSPENDED.value,
    SubscriptionStatus.CANCELLED.value,
)

class Organization(Base):
    """
    Represents a hospital tenant.

    Provisioned by scripts/setup_platform.py; the API only reads it
    to resolve and validate the tenant of a request.
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subdomain: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        doc="Host label identifying the tenant (e.g. apollo in apollo.example.com)",
    )
    custom_domain: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    subscription_status: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        doc="active / trial / suspended / cancelled; null when billing is not tracked",
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
