"""Authentication endpoints (API JWT)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_token_authority
from app.core.security import get_current_principal, get_password_hash
from app.db.session import get_db
from app.schemas.auth import (
    ChangePasswordRequest,
    CurrentPrincipal,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UpdateProfileRequest,
    UserProfile,
)
from app.services.account_service import PasswordChangeError, authenticate_user, change_password
from app.services.token_service import InvalidCredentialError, TokenAuthority
from app.services.user_service import create_user, get_user_by_email, get_user_by_id, update_profile

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=TokenResponse)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    tokens: TokenAuthority = Depends(get_token_authority),
) -> TokenResponse:
    if get_user_by_email(db=db, email=payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")
    user = create_user(
        db=db,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    logger.info("[AUTH] User %s registered", user.email)
    return tokens.issue(user)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenAuthority = Depends(get_token_authority),
) -> TokenResponse:
    user = authenticate_user(db, payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    logger.info("[AUTH] User %s logged in", user.email)
    return tokens.issue(user)


@router.post("/refresh", response_model=TokenResponse)
def refresh(payload: RefreshTokenRequest, tokens: TokenAuthority = Depends(get_token_authority)) -> TokenResponse:
    try:
        return tokens.refresh(payload.refresh_token)
    except InvalidCredentialError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token") from exc


@router.post("/logout", response_model=MessageResponse)
def logout(
    payload: RefreshTokenRequest,
    principal: CurrentPrincipal = Depends(get_current_principal),
    tokens: TokenAuthority = Depends(get_token_authority),
) -> MessageResponse:
    tokens.revoke(payload.refresh_token)
    logger.info("[AUTH] User %s logged out", principal.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserProfile)
def me(principal: CurrentPrincipal = Depends(get_current_principal), db: Session = Depends(get_db)) -> UserProfile:
    user = get_user_by_id(db, principal.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserProfile.from_user(user)


@router.post("/change-password", response_model=MessageResponse)
def change_password_endpoint(
    payload: ChangePasswordRequest,
    principal: CurrentPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    tokens: TokenAuthority = Depends(get_token_authority),
) -> MessageResponse:
    user = get_user_by_id(db, principal.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        change_password(tokens, user, payload.current_password, payload.new_password)
    except PasswordChangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Password changed successfully. Please login again.")


@router.put("/profile", response_model=MessageResponse)
def update_profile_endpoint(
    payload: UpdateProfileRequest,
    principal: CurrentPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> MessageResponse:
    user = get_user_by_id(db, principal.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    update_profile(db, user, payload.first_name, payload.last_name)
    logger.info("[AUTH] User %s updated profile", principal.id)
    return MessageResponse(message="Profile updated successfully")
