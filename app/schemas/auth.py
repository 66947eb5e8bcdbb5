"""Authentication-related request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Payload for user registration."""

    email: str
    password: str = Field(min_length=6)
    first_name: str = ""
    last_name: str = ""


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: str
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class UpdateProfileRequest(BaseModel):
    first_name: str
    last_name: str


class UserProfile(BaseModel):
    """Public projection of a principal returned with every token pair."""

    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    roles: list[str]
    claims: list[str]

    @classmethod
    def from_user(cls, user) -> "UserProfile":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            roles=user.role_names,
            claims=user.permissions,
        )


class TokenResponse(BaseModel):
    """Access/refresh pair handed back by login, register and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime
    refresh_expires_at: datetime
    user: UserProfile


class CurrentPrincipal(BaseModel):
    """Identity reconstructed from a verified access token."""

    id: int
    name: str
    email: str
    roles: list[str] = []
    permissions: list[str] = []

    model_config = ConfigDict(frozen=True)


class MessageResponse(BaseModel):
    message: str
