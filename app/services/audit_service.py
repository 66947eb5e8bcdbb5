"""Change-tracking audit: capture pending ORM mutations and persist audit records."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect, select
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import InstanceState, Session, sessionmaker

from app.db.base import AuditBase
from app.models.audit_log import AuditLog
from app.models.auditable import AuditableMixin, AuditMode
from app.schemas.audit import AuditChange, AuditRecord
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOFT_DELETE_FLAG = "is_deleted"
# Written alongside every update; kept in snapshots but not reported as field changes.
STAMP_FIELDS = frozenset({"updated_at", "updated_by"})


class EntityState(str, enum.Enum):
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"


ACTION_BY_STATE: dict[EntityState, str] = {
    EntityState.ADDED: "Create",
    EntityState.MODIFIED: "Update",
    EntityState.DELETED: "Delete",
}


@dataclass
class PendingChange:
    """One tracked entity about to be committed.

    ``original_values`` and ``modified`` are captured before the session
    flushes, because flushing resets attribute history.
    """

    entity: Any
    state: EntityState
    original_values: dict[str, Any] = field(default_factory=dict)
    modified: list[tuple[str, Any, Any]] = field(default_factory=list)


def column_values(entity: Any) -> dict[str, Any]:
    """Return the current column values of a mapped entity keyed by attribute name."""
    mapper = inspect(entity).mapper
    return {attr.key: getattr(entity, attr.key) for attr in mapper.column_attrs}


def _stored_values(state: InstanceState, keys: list[str]) -> dict[str, Any]:
    """Read the stored column values of a persistent entity straight from the database."""
    if not keys or not state.has_identity or state.session is None:
        return {}
    mapper = state.mapper
    columns = [mapper.column_attrs[key].columns[0] for key in keys]
    criteria = [column == value for column, value in zip(mapper.primary_key, state.identity)]
    with state.session.no_autoflush:
        row = state.session.execute(select(*columns).where(*criteria)).one_or_none()
    return dict(zip(keys, row)) if row is not None else {}


def _capture_modified(entity: Any) -> tuple[dict[str, Any], list[tuple[str, Any, Any]]]:
    state = inspect(entity)
    histories = {attr.key: state.attrs[attr.key].history for attr in state.mapper.column_attrs}
    # Assigning an expired attribute records no prior value in its history.
    stored = _stored_values(
        state, [key for key, history in histories.items() if history.added and not history.deleted]
    )
    original: dict[str, Any] = {}
    modified: list[tuple[str, Any, Any]] = []
    for attr in state.mapper.column_attrs:
        history = histories[attr.key]
        current = getattr(entity, attr.key)
        if history.has_changes():
            old = history.deleted[0] if history.deleted else stored.get(attr.key)
            new = history.added[0] if history.added else current
            original[attr.key] = old
            if old != new and attr.key not in STAMP_FIELDS:
                modified.append((attr.key, old, new))
        else:
            original[attr.key] = current
    return original, modified


def collect_pending_changes(session: Session) -> list[PendingChange]:
    """Snapshot the auditable entities that the next flush will write.

    A soft delete (``is_deleted`` flipped to true) is reported as a deletion.
    """
    changes: list[PendingChange] = []
    for entity in list(session.new):
        if isinstance(entity, AuditableMixin):
            changes.append(PendingChange(entity=entity, state=EntityState.ADDED))

    for entity in list(session.dirty):
        if not isinstance(entity, AuditableMixin) or not session.is_modified(entity):
            continue
        original, modified = _capture_modified(entity)
        if not modified:
            continue
        soft_deleted = any(name == SOFT_DELETE_FLAG and not old and new for name, old, new in modified)
        state = EntityState.DELETED if soft_deleted else EntityState.MODIFIED
        changes.append(PendingChange(entity=entity, state=state, original_values=original, modified=modified))

    for entity in list(session.deleted):
        if isinstance(entity, AuditableMixin):
            original, _ = _capture_modified(entity)
            changes.append(PendingChange(entity=entity, state=EntityState.DELETED, original_values=original))
    return changes


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    encoded = jsonable_encoder(value)
    return encoded if isinstance(encoded, str) else str(encoded)


class ChangeAuditRecorder:
    """Turns pending changes into audit records according to each entity's audit mode."""

    def intercept(
        self,
        changes: Iterable[PendingChange],
        user_id: str | None,
        correlation_id: str | None,
    ) -> list[AuditRecord]:
        timestamp = utcnow()
        records: list[AuditRecord] = []
        for change in changes:
            record = self._build_record(change, user_id, correlation_id, timestamp)
            if record is not None:
                records.append(record)
        return records

    def _build_record(
        self,
        change: PendingChange,
        user_id: str | None,
        correlation_id: str | None,
        timestamp: datetime,
    ) -> AuditRecord | None:
        entity = change.entity
        audit_mode: AuditMode = getattr(entity, "audit_mode", AuditMode.NONE)
        if audit_mode is AuditMode.NONE:
            return None
        action = ACTION_BY_STATE.get(change.state)
        if action is None or not audit_mode.admits(action):
            return None

        before: dict[str, Any] | None = None
        after: dict[str, Any] | None = None
        audit_changes: list[AuditChange] = []
        if action == "Create":
            after = jsonable_encoder(column_values(entity))
            entity_id = after.get("id")
        elif action == "Update":
            before = jsonable_encoder(change.original_values)
            after = jsonable_encoder(column_values(entity))
            audit_changes = [
                AuditChange(field=name, old_value=_stringify(old), new_value=_stringify(new))
                for name, old, new in change.modified
            ]
            entity_id = after.get("id")
        else:
            before = jsonable_encoder(change.original_values)
            entity_id = before.get("id")

        return AuditRecord(
            table_name=entity.__tablename__,
            entity_id=str(entity_id),
            action=action,
            user_id=user_id,
            timestamp=timestamp,
            correlation_id=correlation_id,
            before=before,
            after=after,
            changes=audit_changes,
        )


class AuditStore:
    """Append-only access to the audit database.

    Writes are best-effort: a failing audit database is logged and otherwise
    ignored so it can never undo or block a business operation. When the
    audit tables are missing (the store was down at startup) they are created
    on demand and the operation is retried once.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def ensure_schema(self) -> None:
        """Create any missing audit tables."""
        with self.session_factory() as session:
            AuditBase.metadata.create_all(bind=session.get_bind(), checkfirst=True)

    def _with_schema(self, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except (OperationalError, ProgrammingError):
            logger.warning("[AUDIT] Audit store operation failed; ensuring audit tables and retrying once.")
            self.ensure_schema()
            return operation()

    def _insert(self, records: list[AuditRecord]) -> None:
        with self.session_factory() as session:
            session.add_all(AuditLog(**record.model_dump()) for record in records)
            session.commit()

    def log_entries(self, records: list[AuditRecord]) -> bool:
        if not records:
            return True
        try:
            self._with_schema(lambda: self._insert(records))
        except SQLAlchemyError:
            logger.warning("[AUDIT] Failed to write %s audit record(s); continuing.", len(records), exc_info=True)
            return False
        logger.debug("[AUDIT] Stored %s audit record(s)", len(records))
        return True

    def _select_trail(self, table_name: str, entity_id: str) -> list[AuditRecord]:
        with self.session_factory() as session:
            rows = session.scalars(
                select(AuditLog)
                .where(AuditLog.table_name == table_name, AuditLog.entity_id == str(entity_id))
                .order_by(AuditLog.timestamp.desc())
            ).all()
            return [AuditRecord.model_validate(row) for row in rows]

    def get_trail(self, table_name: str, entity_id: str) -> list[AuditRecord]:
        """Return every record for one entity, most recent first."""
        return self._with_schema(lambda: self._select_trail(table_name, entity_id))


AuditDispatch = Callable[[list[AuditRecord]], Any]


def commit_with_audit(
    db: Session,
    recorder: ChangeAuditRecorder,
    dispatch: AuditDispatch,
    *,
    user_id: str | None = None,
    correlation_id: str | None = None,
) -> list[AuditRecord]:
    """Commit ``db`` and hand the resulting audit records to ``dispatch``.

    Pending changes are captured before the flush, records are built after it
    (so new rows already have their ids), and the audit write only starts once
    the business transaction has committed.
    """
    pending = collect_pending_changes(db)
    try:
        db.flush()
        records = recorder.intercept(pending, user_id, correlation_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    if records:
        dispatch(records)
    return records
