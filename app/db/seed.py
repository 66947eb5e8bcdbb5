"""Identity seeding: roles, role permission claims and the super admin account."""

import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import get_password_hash
from app.services.user_service import add_role_claim, create_user, ensure_role, get_user_by_email

logger = logging.getLogger(__name__)

ROLES: tuple[str, ...] = ("SuperAdmin", "Admin", "User")
ROLE_CLAIMS: dict[str, tuple[str, ...]] = {
    "SuperAdmin": ("CanManageUsers", "CanManageRoles", "CanManageCars", "CanViewAuditLogs", "CanManageSystem"),
    "Admin": ("CanManageUsers", "CanManageCars"),
}


def ensure_roles(session: Session) -> None:
    """Create missing roles and attach their permission claims."""
    for role_name in ROLES:
        role = ensure_role(session, role_name)
        for claim_value in ROLE_CLAIMS.get(role_name, ()):
            if add_role_claim(session, role, claim_value):
                logger.info("[BOOTSTRAP] Added claim %s to %s role", claim_value, role_name)
    session.commit()


def ensure_super_admin(session: Session) -> bool:
    """Ensure the configured super admin exists.

    Returns:
        bool: True when the account already existed before this call.
    """
    existing_user = get_user_by_email(session, settings.seed_admin_email)
    if existing_user is not None:
        logger.info("[BOOTSTRAP] SuperAdmin user already exists: %s", existing_user.email)
        return True

    create_user(
        db=session,
        email=settings.seed_admin_email,
        hashed_password=get_password_hash(settings.seed_admin_password),
        first_name="Super",
        last_name="Admin",
        roles=["SuperAdmin", "Admin"],
    )
    logger.warning("[SECURITY] Seeded SuperAdmin account %s. Change its password immediately.", settings.seed_admin_email)
    return False


def ensure_seed_data(session: Session) -> None:
    ensure_roles(session)
    ensure_super_admin(session)
