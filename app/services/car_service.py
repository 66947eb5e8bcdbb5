"""Car CRUD and ownership operations with audited commits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.models import Car, OwnerCar, User
from app.schemas.audit import AuditRecord
from app.schemas.car import CarCreate, CarUpdate
from app.services.audit_service import AuditDispatch, ChangeAuditRecorder, commit_with_audit

logger = logging.getLogger(__name__)


class CarNotFoundError(Exception):
    """Raised when a car (or an owner assignment) does not exist or is soft-deleted."""


class CarConflictError(Exception):
    """Raised on duplicate VINs or duplicate owner assignments."""


@dataclass
class AuditContext:
    """Who is acting, which request this is, and where audit records go."""

    recorder: ChangeAuditRecorder
    dispatch: AuditDispatch
    user_id: str | None = None
    correlation_id: str | None = None


def active_cars() -> Select[tuple[Car]]:
    """Base query for cars that have not been soft-deleted."""
    return select(Car).where(Car.is_deleted.is_(False))


def active_owner_cars() -> Select[tuple[OwnerCar]]:
    return select(OwnerCar).where(OwnerCar.is_deleted.is_(False))


def _commit(db: Session, ctx: AuditContext) -> list[AuditRecord]:
    return commit_with_audit(
        db,
        ctx.recorder,
        ctx.dispatch,
        user_id=ctx.user_id,
        correlation_id=ctx.correlation_id,
    )


def list_cars(db: Session) -> list[Car]:
    return list(db.scalars(active_cars().order_by(Car.id)).all())


def get_car(db: Session, car_id: int) -> Car:
    car = db.scalar(active_cars().where(Car.id == car_id))
    if car is None:
        raise CarNotFoundError(f"Car with ID {car_id} not found")
    return car


def list_owners(db: Session, car_id: int) -> list[OwnerCar]:
    return list(db.scalars(active_owner_cars().where(OwnerCar.car_id == car_id).order_by(OwnerCar.id)).all())


def list_cars_by_owner(db: Session, owner_id: int) -> list[Car]:
    owned = active_owner_cars().where(OwnerCar.owner_id == owner_id).with_only_columns(OwnerCar.car_id)
    return list(db.scalars(active_cars().where(Car.id.in_(owned)).order_by(Car.id)).all())


def create_car(db: Session, payload: CarCreate, ctx: AuditContext) -> Car:
    vin = payload.vin.upper()
    if db.scalar(select(Car.id).where(Car.vin == vin)) is not None:
        raise CarConflictError(f"Car with VIN {vin} already exists")
    car = Car(make=payload.make, model=payload.model, year=payload.year, vin=vin, created_by=ctx.user_id)
    db.add(car)
    _commit(db, ctx)
    db.refresh(car)
    logger.info("Created car with ID %s", car.id)
    return car


def update_car(db: Session, car_id: int, payload: CarUpdate, ctx: AuditContext) -> Car:
    car = get_car(db, car_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for name, value in changes.items():
        setattr(car, name, value)
    if db.is_modified(car):
        car.updated_at = datetime.now(timezone.utc)
        car.updated_by = ctx.user_id
    _commit(db, ctx)
    db.refresh(car)
    logger.info("Updated car with ID %s", car_id)
    return car


def delete_car(db: Session, car_id: int, ctx: AuditContext) -> None:
    """Soft-delete a car; it disappears from every read path above."""
    car = get_car(db, car_id)
    car.mark_deleted(ctx.user_id)
    _commit(db, ctx)
    logger.info("Deleted car with ID %s", car_id)


def assign_owner(db: Session, car_id: int, owner_id: int, ownership_type: str, ctx: AuditContext) -> OwnerCar:
    get_car(db, car_id)
    owner = db.get(User, owner_id)
    if owner is None or not owner.is_active:
        raise CarNotFoundError(f"User with ID {owner_id} not found")
    existing = db.scalar(select(OwnerCar).where(OwnerCar.car_id == car_id, OwnerCar.owner_id == owner_id))
    if existing is not None:
        raise CarConflictError("User is already assigned to this car")

    assignment = OwnerCar(car_id=car_id, owner_id=owner_id, ownership_type=ownership_type, created_by=ctx.user_id)
    db.add(assignment)
    _commit(db, ctx)
    logger.info(
        "Assigned user %s to car %s with ownership type %s", owner_id, car_id, ownership_type
    )
    return assignment


def unassign_owner(db: Session, car_id: int, owner_id: int, ctx: AuditContext) -> None:
    """Remove an owner assignment outright so the pair can be assigned again later."""
    assignment = db.scalar(select(OwnerCar).where(OwnerCar.car_id == car_id, OwnerCar.owner_id == owner_id))
    if assignment is None:
        raise CarNotFoundError("Owner assignment not found")
    db.delete(assignment)
    _commit(db, ctx)
    logger.info("Unassigned user %s from car %s", owner_id, car_id)
