"""Security utilities for password hashing and JWT-based auth."""

from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from app.core.config import settings
from app.schemas.auth import CurrentPrincipal
from app.services.token_service import InvalidCredentialError, decode_access_token

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def principal_from_claims(payload: dict[str, Any]) -> CurrentPrincipal:
    """Build the request principal from already verified token claims."""
    try:
        principal_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidCredentialError("Invalid authentication token") from exc

    roles = payload.get("role") or []
    permissions = payload.get("permission") or []
    return CurrentPrincipal(
        id=principal_id,
        name=str(payload.get("name", "")),
        email=str(payload.get("email", "")),
        roles=[roles] if isinstance(roles, str) else list(roles),
        permissions=[permissions] if isinstance(permissions, str) else list(permissions),
    )


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CurrentPrincipal:
    """Resolve the authenticated principal from the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(credentials.credentials, settings.token_settings())
        return principal_from_claims(payload)
    except InvalidCredentialError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def require_permission(permission: str) -> Callable[[CurrentPrincipal], CurrentPrincipal]:
    """Build a dependency that requires a ``permission`` claim on the access token."""

    def _checker(principal: CurrentPrincipal = Depends(get_current_principal)) -> CurrentPrincipal:
        if permission not in principal.permissions:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
        return principal

    return _checker
