from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import get_settings

settings = get_settings()

# Main SQLAlchemy engine, shared by every tenant (rows carry tenant_id)
engine = create_engine(
    str(settings.database_url),
    future=True,
    pool_pre_ping=True,
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.

    Services never open sessions themselves; they receive this one
    explicitly, so tests can swap in an isolated store through
    app.dependency_overrides.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
