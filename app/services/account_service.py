"""Credential verification and password management."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.security import get_password_hash, verify_password
from app.models import User
from app.services.token_service import TokenAuthority
from app.services.user_service import get_user_by_email

logger = logging.getLogger(__name__)


class PasswordChangeError(Exception):
    """Raised when the current password does not match."""


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Return the active principal for valid credentials and stamp the login time."""
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def change_password(
    tokens: TokenAuthority,
    user: User,
    current_password: str,
    new_password: str,
) -> int:
    """Change the password and revoke every refresh token of the principal.

    Both writes go through ``tokens.db`` and commit together, so a failed
    revocation also leaves the old password in place. Returns the number of
    sessions that were revoked.
    """
    if not verify_password(current_password, user.password_hash):
        raise PasswordChangeError("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    revoked = tokens.revoke_all(user.id)
    logger.info("[AUTH] user_id=%s changed password; revoked %s session(s)", user.id, revoked)
    return revoked
