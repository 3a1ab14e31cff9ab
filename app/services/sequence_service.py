# app/services/sequence_service.py
"""
Per-tenant, per-day sequence numbers for visits and queue tokens.

Each allocation is one INSERT ... ON CONFLICT DO UPDATE ... RETURNING
statement against visit_counters. The database serializes concurrent
writers on the (tenant_id, date_key) row, so two callers can never be
handed the same value. Never replace this with a read / add one / write
sequence: that reintroduces duplicate numbers under load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.organization import Organization
from app.models.visit_counter import VisitCounter
from app.utils.datetime_utils import facility_date_key
from app.utils.id_generators import format_token_number, format_visit_number, to_org_code

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class AllocatedNumbers:
    visit_seq: int | None
    token_seq: int
    date_key: str


@dataclass(frozen=True)
class MintedNumbers:
    visit_number: str | None
    token_number: str


def next_numbers(
    db: Session,
    tenant_id: UUID,
    *,
    include_visit: bool = True,
    now: datetime | None = None,
) -> AllocatedNumbers:
    """
    Claim the next token sequence (and visit sequence if include_visit)
    for the tenant's current facility-local day.

    The first call of a day creates the counter row; values start at 1.
    Runs inside the caller's transaction: the row stays locked until the
    caller commits, and a rollback releases the numbers.
    """
    date_key = facility_date_key(get_settings().facility_timezone, now)

    dialect_name = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect_name)
    if insert is None:
        raise RuntimeError(f"Sequence allocation is not supported on dialect '{dialect_name}'")

    updates = {"next_token_seq": VisitCounter.next_token_seq + 1}
    if include_visit:
        updates["next_visit_seq"] = VisitCounter.next_visit_seq + 1

    stmt = (
        insert(VisitCounter)
        .values(
            tenant_id=tenant_id,
            date_key=date_key,
            next_visit_seq=2 if include_visit else 1,
            next_token_seq=2,
        )
        .on_conflict_do_update(
            index_elements=[VisitCounter.tenant_id, VisitCounter.date_key],
            set_=updates,
        )
        .returning(VisitCounter.next_visit_seq, VisitCounter.next_token_seq)
    )
    row = db.execute(stmt).one()

    # RETURNING yields the post-increment values
    visit_seq = row.next_visit_seq - 1 if include_visit else None
    token_seq = row.next_token_seq - 1
    logger.debug("Allocated tenant=%s day=%s visit_seq=%s token_seq=%s", tenant_id, date_key, visit_seq, token_seq)
    return AllocatedNumbers(visit_seq=visit_seq, token_seq=token_seq, date_key=date_key)


def mint_numbers(
    db: Session,
    tenant: Organization,
    *,
    include_visit: bool = True,
    now: datetime | None = None,
) -> MintedNumbers:
    """
    Allocate and format visit/token numbers for a tenant.

    Example: V-APOLLO-250127-0001 / T-APOLLO-250127-0001
    """
    allocated = next_numbers(db, tenant.id, include_visit=include_visit, now=now)
    org_code = to_org_code(tenant.subdomain)
    visit_number = None
    if allocated.visit_seq is not None:
        visit_number = format_visit_number(org_code, allocated.date_key, allocated.visit_seq)
    return MintedNumbers(
        visit_number=visit_number,
        token_number=format_token_number(org_code, allocated.date_key, allocated.token_seq),
    )
