"""Request-scoped service wiring for API endpoints."""

from uuid import uuid4

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import get_current_principal
from app.db import session as db_session
from app.db.session import get_db
from app.schemas.audit import AuditRecord
from app.schemas.auth import CurrentPrincipal
from app.services.audit_service import AuditStore, ChangeAuditRecorder
from app.services.car_service import AuditContext
from app.services.token_service import TokenAuthority


def get_token_authority(db: Session = Depends(get_db)) -> TokenAuthority:
    return TokenAuthority(db, settings.token_settings())


def get_audit_store() -> AuditStore:
    return AuditStore(db_session.AuditSessionLocal)


def get_correlation_id(request: Request) -> str:
    """Return the id stamped by the request middleware, or a fresh one."""
    return getattr(request.state, "correlation_id", None) or uuid4().hex


def get_audit_context(
    background_tasks: BackgroundTasks,
    correlation_id: str = Depends(get_correlation_id),
    principal: CurrentPrincipal = Depends(get_current_principal),
    store: AuditStore = Depends(get_audit_store),
) -> AuditContext:
    """Audit context whose records are written after the response is sent."""

    def dispatch(records: list[AuditRecord]) -> None:
        background_tasks.add_task(store.log_entries, records)

    return AuditContext(
        recorder=ChangeAuditRecorder(),
        dispatch=dispatch,
        user_id=str(principal.id),
        correlation_id=correlation_id,
    )
