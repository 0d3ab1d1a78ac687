import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..errors import Conflict
from ..models.models import Admin, Instrument
from ..schemas.fleet import InstrumentCreate, InstrumentUpdate, InstrumentResponse, InstrumentStatus
from ..services.ownership import ListParams, OwnedRepository
from .common import ok, deleted, list_params


router = APIRouter(prefix="/instruments", tags=["instruments"])
logger = structlog.get_logger(__name__)


def _serial_taken(db: Session, serial_number: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    # Serial numbers are unique across every admin
    q = db.query(Instrument.id).filter(Instrument.serial_number == serial_number)
    if exclude_id is not None:
        q = q.filter(Instrument.id != exclude_id)
    return q.first() is not None


@router.get("")
def list_instruments(
    type: Optional[str] = Query(None),
    status: Optional[InstrumentStatus] = Query(None),
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {"type": type or None, "status": status.value if status else None}
    items, total = OwnedRepository(db, admin.id, Instrument).list(params)
    return ok([InstrumentResponse.model_validate(i) for i in items], params.pagination(total))


@router.get("/{instrument_id}")
def get_instrument(instrument_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    i = OwnedRepository(db, admin.id, Instrument).get_or_404(instrument_id, "Instrument")
    return ok(InstrumentResponse.model_validate(i))


@router.post("", status_code=201)
def create_instrument(payload: InstrumentCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    if _serial_taken(db, payload.serial_number):
        raise Conflict("Serial number already exists")
    i = OwnedRepository(db, admin.id, Instrument).create(**payload.model_dump())
    db.commit()
    db.refresh(i)
    logger.info("instrument_created", admin_id=str(admin.id), instrument_id=str(i.id))
    return ok(InstrumentResponse.model_validate(i))


@router.put("/{instrument_id}")
def update_instrument(
    instrument_id: uuid.UUID,
    payload: InstrumentUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    i = OwnedRepository(db, admin.id, Instrument).get_or_404(instrument_id, "Instrument")
    data = payload.model_dump(exclude_unset=True)
    for required in ("name", "serial_number", "status"):
        if required in data and data[required] is None:
            data.pop(required)
    serial = data.get("serial_number")
    if serial and serial != i.serial_number and _serial_taken(db, serial, exclude_id=i.id):
        raise Conflict("Serial number already exists")
    for k, v in data.items():
        setattr(i, k, v)
    db.commit()
    db.refresh(i)
    return ok(InstrumentResponse.model_validate(i))


@router.delete("/{instrument_id}")
def delete_instrument(instrument_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    i = OwnedRepository(db, admin.id, Instrument).get_or_404(instrument_id, "Instrument")
    db.delete(i)
    db.commit()
    logger.info("instrument_deleted", admin_id=str(admin.id), instrument_id=str(instrument_id))
    return deleted("Instrument")
