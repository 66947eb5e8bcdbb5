"""Schema exports."""

from app.schemas.audit import AuditChange, AuditRecord
from app.schemas.auth import (
    ChangePasswordRequest,
    CurrentPrincipal,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserProfile,
)
from app.schemas.car import CarCreate, CarDetailRead, CarRead, CarUpdate
from app.schemas.user import UserRead

__all__ = [
    "AuditChange",
    "AuditRecord",
    "ChangePasswordRequest",
    "CurrentPrincipal",
    "LoginRequest",
    "RefreshTokenRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserProfile",
    "CarCreate",
    "CarDetailRead",
    "CarRead",
    "CarUpdate",
    "UserRead",
]
