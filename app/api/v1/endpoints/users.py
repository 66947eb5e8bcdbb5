"""Principal administration endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_token_authority
from app.core.security import require_permission
from app.db.session import get_db
from app.models import User
from app.schemas.auth import CurrentPrincipal
from app.schemas.user import AssignRolesRequest, SetActiveRequest, UserRead
from app.services.token_service import TokenAuthority
from app.services.user_service import assign_roles, get_user_by_id, list_users, set_active

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)
can_manage_users = require_permission("CanManageUsers")


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("", response_model=list[UserRead], summary="List users")
def list_users_endpoint(
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_users),
) -> list[User]:
    return list_users(db)


@router.post("/{user_id}/roles", response_model=UserRead)
def assign_roles_endpoint(
    user_id: int,
    payload: AssignRolesRequest,
    db: Session = Depends(get_db),
    principal: CurrentPrincipal = Depends(can_manage_users),
) -> User:
    user = _get_user_or_404(db, user_id)
    try:
        user = assign_roles(db, user, payload.roles)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.info("[AUTH] user_id=%s roles set to %s by user_id=%s", user_id, payload.roles, principal.id)
    return user


@router.post("/{user_id}/active", response_model=UserRead)
def set_active_endpoint(
    user_id: int,
    payload: SetActiveRequest,
    db: Session = Depends(get_db),
    tokens: TokenAuthority = Depends(get_token_authority),
    principal: CurrentPrincipal = Depends(can_manage_users),
) -> User:
    """Activate or deactivate a principal; deactivation also ends every session."""
    user = set_active(db, _get_user_or_404(db, user_id), payload.is_active)
    if not payload.is_active:
        tokens.revoke_all(user.id)
    logger.info("[AUTH] user_id=%s is_active=%s set by user_id=%s", user_id, payload.is_active, principal.id)
    return user
