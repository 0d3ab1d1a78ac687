import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..errors import Conflict
from ..models.models import Admin, Vehicle
from ..schemas.fleet import VehicleCreate, VehicleUpdate, VehicleResponse, VehicleStatus, VehicleType
from ..services.ownership import ListParams, OwnedRepository
from .common import ok, deleted, list_params


router = APIRouter(prefix="/vehicles", tags=["vehicles"])
logger = structlog.get_logger(__name__)


def _registration_taken(db: Session, registration_number: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    # Registration numbers are unique across every admin
    q = db.query(Vehicle.id).filter(Vehicle.registration_number == registration_number)
    if exclude_id is not None:
        q = q.filter(Vehicle.id != exclude_id)
    return q.first() is not None


@router.get("")
def list_vehicles(
    type: Optional[VehicleType] = Query(None),
    status: Optional[VehicleStatus] = Query(None),
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {
        "type": type.value if type else None,
        "status": status.value if status else None,
    }
    items, total = OwnedRepository(db, admin.id, Vehicle).list(params)
    return ok([VehicleResponse.model_validate(v) for v in items], params.pagination(total))


@router.get("/{vehicle_id}")
def get_vehicle(vehicle_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    v = OwnedRepository(db, admin.id, Vehicle).get_or_404(vehicle_id, "Vehicle")
    return ok(VehicleResponse.model_validate(v))


@router.post("", status_code=201)
def create_vehicle(payload: VehicleCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    if _registration_taken(db, payload.registration_number):
        raise Conflict("Registration number already exists")
    v = OwnedRepository(db, admin.id, Vehicle).create(**payload.model_dump())
    db.commit()
    db.refresh(v)
    logger.info("vehicle_created", admin_id=str(admin.id), vehicle_id=str(v.id))
    return ok(VehicleResponse.model_validate(v))


@router.put("/{vehicle_id}")
def update_vehicle(
    vehicle_id: uuid.UUID,
    payload: VehicleUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    v = OwnedRepository(db, admin.id, Vehicle).get_or_404(vehicle_id, "Vehicle")
    data = payload.model_dump(exclude_unset=True)
    for required in ("name", "type", "registration_number", "status"):
        if required in data and data[required] is None:
            data.pop(required)
    reg = data.get("registration_number")
    if reg and reg != v.registration_number and _registration_taken(db, reg, exclude_id=v.id):
        raise Conflict("Registration number already exists")
    for k, val in data.items():
        setattr(v, k, val)
    db.commit()
    db.refresh(v)
    return ok(VehicleResponse.model_validate(v))


@router.delete("/{vehicle_id}")
def delete_vehicle(vehicle_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    v = OwnedRepository(db, admin.id, Vehicle).get_or_404(vehicle_id, "Vehicle")
    db.delete(v)
    db.commit()
    logger.info("vehicle_deleted", admin_id=str(admin.id), vehicle_id=str(vehicle_id))
    return deleted("Vehicle")
