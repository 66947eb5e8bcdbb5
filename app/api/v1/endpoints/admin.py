"""System maintenance endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import require_permission
from app.db.session import get_db
from app.schemas.auth import CurrentPrincipal
from app.services.token_service import cleanup_expired_tokens

router = APIRouter()


class TokenCleanupResult(BaseModel):
    deleted: int
    retention_days: int


@router.post("/tokens/cleanup", response_model=TokenCleanupResult)
def cleanup_tokens(
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(require_permission("CanManageSystem")),
) -> TokenCleanupResult:
    """Sweep refresh tokens that expired or were revoked before the retention window."""
    deleted = cleanup_expired_tokens(db, settings.refresh_token_retention_days)
    return TokenCleanupResult(deleted=deleted, retention_days=settings.refresh_token_retention_days)
