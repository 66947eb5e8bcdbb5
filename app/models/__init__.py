"""Application models package."""

from app.models.audit_log import AuditLog
from app.models.auditable import AuditableMixin, AuditMode
from app.models.car import Car, OwnerCar
from app.models.refresh_token import RefreshToken
from app.models.user import Role, RoleClaim, User, UserClaim

__all__ = [
    "AuditLog", "AuditMode", "AuditableMixin", "Car", "OwnerCar", "RefreshToken",
    "Role", "RoleClaim", "User", "UserClaim",
]
