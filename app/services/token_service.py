"""Access/refresh credential issuance, rotation and revocation."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import TokenSettings
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.schemas.auth import TokenResponse, UserProfile
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 32


class InvalidCredentialError(Exception):
    """Raised when a presented token is unknown, expired, revoked or forged."""


def generate_refresh_token() -> str:
    """Return an opaque, URL-safe refresh token with 256 bits of entropy."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


class TokenAuthority:
    """Issues, rotates and revokes credential pairs for principals.

    Every public method runs as one transaction on ``db``: it either commits
    all of its writes or rolls back and re-raises, so a failed call never
    leaves a half-written refresh token behind.
    """

    def __init__(self, db: Session, token_settings: TokenSettings) -> None:
        self.db = db
        self.settings = token_settings

    def issue(self, user: User) -> TokenResponse:
        """Create a new refresh grant and access token for an authenticated principal."""
        now = utcnow()
        refresh_value = generate_refresh_token()
        try:
            refresh_expires_at = self._add_refresh_token(user.id, refresh_value, now)
            access_token, expires_at = self.create_access_token(user, now)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("[TOKENS] Failed to persist refresh token for user_id=%s", user.id)
            raise
        logger.info("[TOKENS] Issued credentials for user_id=%s", user.id)
        return self._response(user, access_token, expires_at, refresh_value, refresh_expires_at)

    def refresh(self, refresh_token: str) -> TokenResponse:
        """Rotate ``refresh_token``: revoke it, link it to its successor and issue a new pair.

        The revoke is a conditional UPDATE so that, of two concurrent calls with
        the same token, only one can match the still-active row.
        """
        now = utcnow()
        successor = generate_refresh_token()
        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.token == refresh_token,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > now,
                )
                .values(revoked_at=now, replaced_by_token=successor)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                logger.info("[TOKENS] Refresh rejected for unknown or inactive token")
                raise InvalidCredentialError("Invalid refresh token")

            user_id = self.db.scalar(select(RefreshToken.user_id).where(RefreshToken.token == refresh_token))
            user = self.db.get(User, user_id) if user_id is not None else None
            if user is None:
                self.db.rollback()
                raise InvalidCredentialError("Invalid refresh token")

            refresh_expires_at = self._add_refresh_token(user.id, successor, now)
            access_token, expires_at = self.create_access_token(user, now)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("[TOKENS] Failed to rotate refresh token")
            raise
        logger.info("[TOKENS] Rotated refresh token for user_id=%s", user.id)
        return self._response(user, access_token, expires_at, successor, refresh_expires_at)

    def revoke(self, refresh_token: str) -> None:
        """Revoke a single token if it is still active; otherwise do nothing."""
        now = utcnow()
        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.token == refresh_token,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > now,
                )
                .values(revoked_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("[TOKENS] Failed to revoke refresh token")
            raise
        if result.rowcount:
            logger.info("[TOKENS] Revoked refresh token")

    def revoke_all(self, user_id: int) -> int:
        """Revoke every active token of a principal in one batch; returns how many."""
        now = utcnow()
        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.user_id == user_id,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > now,
                )
                .values(revoked_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("[TOKENS] Failed to revoke tokens for user_id=%s", user_id)
            raise
        logger.info("[TOKENS] Revoked %s active refresh token(s) for user_id=%s", result.rowcount, user_id)
        return result.rowcount

    def create_access_token(self, user: User, now: datetime | None = None) -> tuple[str, datetime]:
        """Sign an access token carrying identity, role and permission claims."""
        issued_at = now or utcnow()
        expires_at = issued_at + timedelta(minutes=self.settings.access_token_minutes)
        claims: dict[str, Any] = {
            "sub": str(user.id),
            "name": user.username,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "fullName": user.full_name,
            "role": user.role_names,
            "permission": user.permissions,
            "jti": uuid4().hex,
            "iat": issued_at,
            "exp": expires_at,
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
        }
        token = jwt.encode(claims, self.settings.secret_key, algorithm=self.settings.algorithm)
        return token, expires_at

    def _add_refresh_token(self, user_id: int, value: str, now: datetime) -> datetime:
        expires_at = now + timedelta(days=self.settings.refresh_token_days)
        self.db.add(RefreshToken(token=value, user_id=user_id, created_at=now, expires_at=expires_at))
        self.db.flush()
        return expires_at

    @staticmethod
    def _response(
        user: User,
        access_token: str,
        expires_at: datetime,
        refresh_token: str,
        refresh_expires_at: datetime,
    ) -> TokenResponse:
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
            user=UserProfile.from_user(user),
        )


def decode_access_token(token: str, token_settings: TokenSettings) -> dict[str, Any]:
    """Verify signature, issuer, audience and expiry before returning any claim."""
    try:
        return jwt.decode(
            token,
            token_settings.secret_key,
            algorithms=[token_settings.algorithm],
            audience=token_settings.audience,
            issuer=token_settings.issuer,
        )
    except JWTError as exc:
        raise InvalidCredentialError("Could not validate credentials") from exc


def cleanup_expired_tokens(db: Session, retention_days: int, now: datetime | None = None) -> int:
    """Delete tokens that expired or were revoked more than ``retention_days`` ago."""
    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    try:
        result = db.execute(
            delete(RefreshToken)
            .where(
                or_(
                    RefreshToken.expires_at < cutoff,
                    and_(RefreshToken.revoked_at.is_not(None), RefreshToken.revoked_at < cutoff),
                )
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[TOKENS] Token cleanup failed")
        raise
    if result.rowcount:
        logger.info("[TOKENS] Cleaned up %s expired/revoked token(s)", result.rowcount)
    else:
        logger.info("[TOKENS] No expired tokens found to clean up")
    return result.rowcount
