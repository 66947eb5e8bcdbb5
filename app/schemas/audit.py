"""Audit record schemas shared by the recorder, the store and the API."""

from datetime import datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

AuditAction = Literal["Create", "Update", "Delete"]


class AuditChange(BaseModel):
    field: str
    old_value: str | None = None
    new_value: str | None = None

    model_config = ConfigDict(frozen=True)


class AuditRecord(BaseModel):
    """Immutable description of one audited mutation."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    table_name: str
    entity_id: str
    action: AuditAction
    user_id: str | None = None
    timestamp: datetime
    correlation_id: str | None = None
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    changes: list[AuditChange] = []

    model_config = ConfigDict(from_attributes=True, frozen=True)
