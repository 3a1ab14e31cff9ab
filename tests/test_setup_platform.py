"""Tests for the tenant setup script."""

from app.core.security import decode_token
from app.models.organization import Organization
from app.models.user import RoleName, User
from scripts import setup_platform


def test_ensure_organization_is_idempotent(db):
    first = setup_platform.ensure_organization(db, subdomain=" Apollo ", name="Apollo")
    second = setup_platform.ensure_organization(
        db, subdomain="apollo", name="Apollo Hospital", custom_domain="Queue.Apollo.in"
    )

    assert second.id == first.id
    assert db.query(Organization).count() == 1
    assert second.name == "Apollo Hospital"
    assert second.custom_domain == "queue.apollo.in"
    assert second.subscription_status == "active"


def test_ensure_organization_reactivates(db, make_org):
    org = make_org("apollo", is_active=False)
    assert setup_platform.ensure_organization(db, subdomain="apollo", name="Apollo").id == org.id
    db.refresh(org)
    assert org.is_active is True


def test_ensure_staff_user_updates_role(db, org):
    created = setup_platform.ensure_staff_user(db, org, email="Desk@Apollo.in", role=RoleName.RECEPTIONIST)
    updated = setup_platform.ensure_staff_user(db, org, email="desk@apollo.in", role=RoleName.NURSE)

    assert updated.id == created.id
    assert updated.role == RoleName.NURSE
    assert db.query(User).filter(User.tenant_id == org.id).count() == 1


def test_main_prints_token_for_staff_user(session_factory, monkeypatch, capsys):
    monkeypatch.setattr(setup_platform, "SessionLocal", session_factory)

    setup_platform.main(["--subdomain", "max", "--name", "Max", "--email", "doc@max.in", "--role", "DOCTOR", "--print-token"])

    token = capsys.readouterr().out.strip().splitlines()[-1]
    payload = decode_token(token)
    assert payload["role"] == "DOCTOR"
    with session_factory() as db:
        user = db.query(User).filter(User.email == "doc@max.in").one()
        assert payload["sub"] == str(user.id)
        assert payload["tenant_id"] == str(user.tenant_id)
