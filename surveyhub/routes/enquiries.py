import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..models.models import Admin, Enquiry
from ..schemas.enquiries import EnquiryCreate, EnquiryResponse, EnquiryStatus, EnquiryUpdate
from ..services.ownership import ListParams, OwnedRepository
from .common import ok, deleted, list_params


router = APIRouter(prefix="/enquiries", tags=["enquiries"])


@router.get("")
def list_enquiries(
    status: Optional[EnquiryStatus] = Query(None),
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {"status": status.value if status else None}
    items, total = OwnedRepository(db, admin.id, Enquiry).list(params)
    return ok([EnquiryResponse.model_validate(e) for e in items], params.pagination(total))


@router.get("/{enquiry_id}")
def get_enquiry(enquiry_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    e = OwnedRepository(db, admin.id, Enquiry).get_or_404(enquiry_id, "Enquiry")
    return ok(EnquiryResponse.model_validate(e))


@router.post("", status_code=201)
def create_enquiry(payload: EnquiryCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    e = OwnedRepository(db, admin.id, Enquiry).create(**payload.model_dump())
    db.commit()
    db.refresh(e)
    return ok(EnquiryResponse.model_validate(e))


@router.put("/{enquiry_id}")
def update_enquiry(
    enquiry_id: uuid.UUID,
    payload: EnquiryUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    e = OwnedRepository(db, admin.id, Enquiry).get_or_404(enquiry_id, "Enquiry")
    for k, v in payload.model_dump(exclude_unset=True).items():
        if k in ("subject", "message", "status") and v is None:
            continue
        setattr(e, k, v)
    db.commit()
    db.refresh(e)
    return ok(EnquiryResponse.model_validate(e))


@router.delete("/{enquiry_id}")
def delete_enquiry(enquiry_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    e = OwnedRepository(db, admin.id, Enquiry).get_or_404(enquiry_id, "Enquiry")
    db.delete(e)
    db.commit()
    return deleted("Enquiry")
