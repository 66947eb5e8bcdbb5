"""Audit policy and shared bookkeeping columns for auditable entities."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column


class AuditMode(str, enum.Enum):
    """Which mutations of an entity type produce audit records."""

    NONE = "None"
    CREATE_ONLY = "CreateOnly"
    UPDATE_ONLY = "UpdateOnly"
    DELETE_ONLY = "DeleteOnly"
    ALL = "All"

    def admits(self, action: str) -> bool:
        if self is AuditMode.ALL:
            return True
        return {
            AuditMode.CREATE_ONLY: "Create",
            AuditMode.UPDATE_ONLY: "Update",
            AuditMode.DELETE_ONLY: "Delete",
        }.get(self) == action


class AuditableMixin:
    """Soft-delete and authorship columns plus the per-type audit policy.

    ``audit_mode`` is a plain class attribute, not a column: it is declared per
    entity type and may be overridden on a single instance.
    """

    audit_mode: ClassVar[AuditMode] = AuditMode.ALL

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def mark_deleted(self, actor_id: str | None) -> None:
        """Soft-delete the entity; reads filter it out from now on."""
        self.is_deleted = True
        self.deleted_at = datetime.now(timezone.utc)
        self.deleted_by = actor_id
