"""Car request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CarCreate(BaseModel):
    make: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    year: int = Field(ge=1886, le=2100)
    vin: str = Field(min_length=17, max_length=17)


class CarUpdate(BaseModel):
    make: str | None = Field(default=None, min_length=1, max_length=100)
    model: str | None = Field(default=None, min_length=1, max_length=100)
    year: int | None = Field(default=None, ge=1886, le=2100)


class CarRead(BaseModel):
    id: int
    make: str
    model: str
    year: int
    vin: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CarOwnerRead(BaseModel):
    owner_id: int
    ownership_type: str
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CarDetailRead(CarRead):
    owners: list[CarOwnerRead] = []


class AssignOwnerRequest(BaseModel):
    ownership_type: str = "Owner"
