"""Shared pytest fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import create_access_token
from app.core.tenant_context import TenantContext
from app.main import app
from app.models.base import Base
from app.models.organization import Organization
from app.models.patient import Patient
from app.models.tenant_domain import TENANT_TABLES
from app.models.user import RoleName, User


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=TENANT_TABLES)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def feature_flags(monkeypatch):
    """Enable every module; individual tests switch flags off."""
    settings = get_settings()
    monkeypatch.setattr(settings, "enable_queue", True)
    monkeypatch.setattr(settings, "enable_triage", True)
    monkeypatch.setattr(settings, "enable_tv_display", True)
    monkeypatch.setattr(settings, "redis_url", None)
    return settings


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_org(db):
    def _make_org(subdomain: str, **kwargs) -> Organization:
        org = Organization(
            name=kwargs.pop("name", f"{subdomain.title()} Hospital"),
            subdomain=subdomain,
            **kwargs,
        )
        db.add(org)
        db.commit()
        db.refresh(org)
        return org

    return _make_org


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(org: Organization | None, role: RoleName = RoleName.RECEPTIONIST, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            tenant_id=org.id if org else None,
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            first_name=kwargs.pop("first_name", f"User{counter['n']}"),
            last_name=kwargs.pop("last_name", "Test"),
            role=role,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_patient(db):
    def _make_patient(org: Organization, first_name: str = "Asha", **kwargs) -> Patient:
        patient = Patient(tenant_id=org.id, first_name=first_name, last_name=kwargs.pop("last_name", "Rao"), **kwargs)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return _make_patient


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(
            subject=str(user.id),
            tenant_id=str(user.tenant_id) if user.tenant_id else None,
            role=user.role.value,
        )
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def org(make_org):
    return make_org("apollo")


@pytest.fixture
def other_org(make_org):
    return make_org("max")


@pytest.fixture
def ctx(org, make_user):
    """Tenant context of a receptionist at the apollo tenant."""
    return TenantContext(tenant=org, user=make_user(org), source="user")


@pytest.fixture
def other_ctx(other_org, make_user):
    return TenantContext(tenant=other_org, user=make_user(other_org), source="user")
