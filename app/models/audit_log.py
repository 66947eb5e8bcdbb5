"""Audit record model stored in the separate audit database."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import AuditBase


class AuditLog(AuditBase):
    """Immutable trail entry for one create/update/delete of an auditable entity.

    Rows reference business entities by (table_name, entity_id) only; there is
    no foreign key so purging business data never touches audit history.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_table_entity_ts", "table_name", "entity_id", "timestamp"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    table_name: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    correlation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    before: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    changes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
