"""Car management endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_audit_context
from app.core.security import get_current_principal, require_permission
from app.db.session import get_db
from app.models import Car
from app.schemas.auth import CurrentPrincipal, MessageResponse
from app.schemas.car import AssignOwnerRequest, CarCreate, CarDetailRead, CarOwnerRead, CarRead, CarUpdate
from app.services import car_service
from app.services.car_service import AuditContext, CarConflictError, CarNotFoundError

router: APIRouter = APIRouter()
can_manage_cars = require_permission("CanManageCars")


@router.get("", response_model=list[CarRead])
def list_cars(
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(get_current_principal),
) -> list[Car]:
    return car_service.list_cars(db)


@router.get("/my-cars", response_model=list[CarRead])
def my_cars(
    db: Session = Depends(get_db),
    principal: CurrentPrincipal = Depends(get_current_principal),
) -> list[Car]:
    return car_service.list_cars_by_owner(db, principal.id)


@router.get("/by-owner/{owner_id}", response_model=list[CarRead])
def cars_by_owner(
    owner_id: int,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_cars),
) -> list[Car]:
    return car_service.list_cars_by_owner(db, owner_id)


@router.get("/{car_id}", response_model=CarDetailRead)
def get_car(
    car_id: int,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(get_current_principal),
) -> CarDetailRead:
    try:
        car = car_service.get_car(db, car_id)
    except CarNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    owners = [CarOwnerRead.model_validate(owner) for owner in car_service.list_owners(db, car_id)]
    return CarDetailRead(**CarRead.model_validate(car).model_dump(), owners=owners)


@router.post("", response_model=CarRead, status_code=status.HTTP_201_CREATED)
def create_car(
    payload: CarCreate,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_cars),
    ctx: AuditContext = Depends(get_audit_context),
) -> Car:
    try:
        return car_service.create_car(db, payload, ctx)
    except CarConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.put("/{car_id}", response_model=CarRead)
def update_car(
    car_id: int,
    payload: CarUpdate,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_cars),
    ctx: AuditContext = Depends(get_audit_context),
) -> Car:
    try:
        return car_service.update_car(db, car_id, payload, ctx)
    except CarNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete("/{car_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_car(
    car_id: int,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_cars),
    ctx: AuditContext = Depends(get_audit_context),
) -> Response:
    try:
        car_service.delete_car(db, car_id, ctx)
    except CarNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{car_id}/owners/{owner_id}", response_model=MessageResponse)
def assign_owner(
    car_id: int,
    owner_id: int,
    payload: AssignOwnerRequest,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_cars),
    ctx: AuditContext = Depends(get_audit_context),
) -> MessageResponse:
    try:
        car_service.assign_owner(db, car_id, owner_id, payload.ownership_type, ctx)
    except CarNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except CarConflictError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MessageResponse(message="Owner assigned successfully")


@router.delete("/{car_id}/owners/{owner_id}", response_model=MessageResponse)
def unassign_owner(
    car_id: int,
    owner_id: int,
    db: Session = Depends(get_db),
    _: CurrentPrincipal = Depends(can_manage_cars),
    ctx: AuditContext = Depends(get_audit_context),
) -> MessageResponse:
    try:
        car_service.unassign_owner(db, car_id, owner_id, ctx)
    except CarNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MessageResponse(message="Owner unassigned successfully")
