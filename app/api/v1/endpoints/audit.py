"""Audit trail endpoints."""

from fastapi import APIRouter, Depends

from app.api.deps import get_audit_store
from app.core.security import require_permission
from app.schemas.audit import AuditRecord
from app.schemas.auth import CurrentPrincipal
from app.services.audit_service import AuditStore

router: APIRouter = APIRouter()


@router.get("/{table_name}/{entity_id}", response_model=list[AuditRecord])
def get_audit_trail(
    table_name: str,
    entity_id: str,
    store: AuditStore = Depends(get_audit_store),
    _: CurrentPrincipal = Depends(require_permission("CanViewAuditLogs")),
) -> list[AuditRecord]:
    """Return the audit trail of one entity, most recent first."""
    return store.get_trail(table_name, entity_id)
