# app/models/base.py
from enum import Enum

from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Every tenant-scoped table carries a tenant_id column; isolation is
    enforced by filtering on it in every read and write.
    """

    pass

def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values (lower-case wire names) instead of member names."""
    return [member.value for member in enum_cls]
