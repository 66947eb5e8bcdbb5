"""Database engines and session management."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


def _build_engine(url: str) -> Engine:
    connect_args: dict[str, bool] = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = _build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Audit records live in their own database so business commits never depend on it.
audit_engine = _build_engine(settings.audit_database_url)
AuditSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=audit_engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
