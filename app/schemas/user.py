"""Principal administration schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    is_active: bool
    last_login_at: datetime | None = None
    role_names: list[str] = []
    permissions: list[str] = []

    model_config = ConfigDict(from_attributes=True)


class AssignRolesRequest(BaseModel):
    roles: list[str]


class SetActiveRequest(BaseModel):
    is_active: bool
