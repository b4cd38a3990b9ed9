"""
core/database.py
SQLAlchemy engine, session factory and the request-scoped session dependency.
"""
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from registry.core.config import settings
from registry.utils.helpers import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


def normalize_database_url(url: str) -> str:
    """Hosted Postgres providers still hand out the legacy postgres:// scheme."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def build_engine(url: str) -> Engine:
    url = normalize_database_url(url)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine | None = None) -> None:
    """Create any missing tables."""
    # Register the mapped classes on Base.metadata before create_all
    from registry.models import certificate_model, draft_model, settings_model, user_model  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured.")


def get_db() -> Iterator[Session]:
    """One session per request; always closed when the request ends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
