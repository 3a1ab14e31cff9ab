"""Tests for triage upserts."""

import pytest

from app.core.exceptions import NotFound
from app.models.triage import Triage
from app.schemas.triage import TriageUpsert
from app.services import triage_service, visit_service


@pytest.fixture
def visit(db, ctx, make_patient):
    visit, _ = visit_service.create_visit(db, ctx, patient_identifier=str(make_patient(ctx.tenant).id))
    return visit


def test_second_save_updates_only_given_fields(db, ctx, visit):
    first = triage_service.upsert_triage(db, ctx.tenant_id, visit.id, TriageUpsert(symptoms="cough", pain_scale=3))
    second = triage_service.upsert_triage(db, ctx.tenant_id, visit.id, TriageUpsert(pain_scale=6))

    assert second.id == first.id
    assert second.symptoms == "cough"
    assert second.pain_scale == 6


def test_other_tenant_visit_is_not_found(db, ctx, other_ctx, visit):
    with pytest.raises(NotFound):
        triage_service.upsert_triage(db, other_ctx.tenant_id, visit.id, TriageUpsert(pain_scale=2))
    assert triage_service.get_triage(db, ctx.tenant_id, visit.id) is None


def test_concurrent_first_save_merges_into_existing_row(db, ctx, visit, session_factory, monkeypatch):
    tenant_id, visit_id = ctx.tenant_id, visit.id
    with session_factory() as colleague:
        colleague.add(Triage(tenant_id=tenant_id, visit_id=visit_id, symptoms="chest pain"))
        colleague.commit()
        existing_id = colleague.query(Triage.id).filter(Triage.visit_id == visit_id).scalar()

    # our read happened before the colleague's insert landed
    real_get_triage = triage_service.get_triage
    reads = {"n": 0}

    def stale_first_read(session, tid, vid):
        reads["n"] += 1
        if reads["n"] == 1:
            return None
        return real_get_triage(session, tid, vid)

    monkeypatch.setattr(triage_service, "get_triage", stale_first_read)

    triage = triage_service.upsert_triage(db, tenant_id, visit_id, TriageUpsert(pain_scale=7, priority="urgent"))

    assert triage.id == existing_id
    assert triage.symptoms == "chest pain"
    assert triage.pain_scale == 7
    assert triage.priority == "urgent"
    assert db.query(Triage).filter(Triage.visit_id == visit_id).count() == 1
