import uuid
from typing import Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..errors import Conflict
from ..models.models import Admin, Bill, Client, Site
from ..schemas.bills import BillCreate, BillResponse, BillUpdate, NextBillNumber, PaymentStatus
from ..schemas.clients import ClientSummary
from ..schemas.sites import SiteSummary
from ..services import consistency
from ..services.billing import compute_totals, normalize_items, site_ids_from_items, suggest_next_bill_number
from ..services.ownership import ListParams, OwnedRepository, require_owned
from .common import ok, deleted, dated_list_params


router = APIRouter(prefix="/bills", tags=["bills"])
logger = structlog.get_logger(__name__)


def _bill_number_taken(repo: OwnedRepository, bill_number: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    q = repo.query().filter(Bill.bill_number == bill_number)
    if exclude_id is not None:
        q = q.filter(Bill.id != exclude_id)
    return q.first() is not None


def _prepare_items(db: Session, admin_id: uuid.UUID, raw_items: List[dict]) -> List[dict]:
    site_ids = [item["site_id"] for item in raw_items]
    require_owned(db, admin_id, Site, site_ids, "items")
    names: Dict[str, str] = {str(s.id): s.name for s in OwnedRepository(db, admin_id, Site).by_ids(set(site_ids))}
    return normalize_items(raw_items, names)


def expand_bills(db: Session, admin_id: uuid.UUID, bills: List[Bill]) -> List[BillResponse]:
    out = [BillResponse.model_validate(b) for b in bills]
    if not bills:
        return out
    clients = {c.id: c for c in OwnedRepository(db, admin_id, Client).by_ids({b.customer_id for b in bills})}
    site_ids = {uuid.UUID(str(i)) for b in bills for i in (b.site_ids or [])}
    sites = {s.id: s for s in OwnedRepository(db, admin_id, Site).by_ids(site_ids)}
    for b, o in zip(bills, out):
        c = clients.get(b.customer_id)
        o.customer = ClientSummary.model_validate(c) if c else None
        o.sites = [
            SiteSummary.model_validate(sites[uuid.UUID(str(i))])
            for i in (b.site_ids or [])
            if uuid.UUID(str(i)) in sites
        ]
    return out


@router.get("")
def list_bills(
    customer_id: Optional[uuid.UUID] = Query(None, alias="customerId"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="paymentStatus"),
    params: ListParams = Depends(dated_list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {
        "customer_id": customer_id,
        "payment_status": payment_status.value if payment_status else None,
    }
    items, total = OwnedRepository(db, admin.id, Bill).list(params)
    return ok(expand_bills(db, admin.id, items), params.pagination(total))


# Registered before /{bill_id} so the literal path wins
@router.get("/next-number")
def next_bill_number(db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    latest = (
        db.query(Bill.bill_number)
        .filter(Bill.admin_id == admin.id)
        .order_by(Bill.bill_number.desc())
        .first()
    )
    return ok(NextBillNumber(next_bill_number=suggest_next_bill_number(latest[0] if latest else None)))


@router.get("/{bill_id}")
def get_bill(bill_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    bill = OwnedRepository(db, admin.id, Bill).get_or_404(bill_id, "Bill")
    return ok(expand_bills(db, admin.id, [bill])[0])


@router.post("", status_code=201)
def create_bill(payload: BillCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    repo = OwnedRepository(db, admin.id, Bill)
    data = payload.model_dump()
    if _bill_number_taken(repo, data["bill_number"]):
        raise Conflict("Bill number already exists")
    require_owned(db, admin.id, Client, [data["customer_id"]], "customerId")

    items = _prepare_items(db, admin.id, data.pop("items"))
    totals = compute_totals(items, data["is_gst_bill"], data["state_gst"], data["central_gst"])
    bill = repo.create(items=items, site_ids=site_ids_from_items(items), **totals, **data)
    db.commit()
    db.refresh(bill)
    logger.info("bill_created", admin_id=str(admin.id), bill_id=str(bill.id), total_amount=bill.total_amount)

    consistency.link_bill_sites(db, admin.id, bill)
    db.refresh(bill)
    return ok(expand_bills(db, admin.id, [bill])[0])


@router.put("/{bill_id}")
def update_bill(
    bill_id: uuid.UUID,
    payload: BillUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    repo = OwnedRepository(db, admin.id, Bill)
    bill = repo.get_or_404(bill_id, "Bill")
    old_site_ids = list(bill.site_ids or [])
    old_payment_status = bill.payment_status

    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "notes"}
    if "bill_number" in data and data["bill_number"] != bill.bill_number and _bill_number_taken(repo, data["bill_number"], exclude_id=bill.id):
        raise Conflict("Bill number already exists")
    if "customer_id" in data:
        require_owned(db, admin.id, Client, [data["customer_id"]], "customerId")

    items_changed = "items" in data
    if items_changed:
        items = _prepare_items(db, admin.id, data.pop("items"))
        bill.items = items
        bill.site_ids = site_ids_from_items(items)
    for k, v in data.items():
        setattr(bill, k, v)

    # Totals are always re-derived from the stored state, never taken from input
    for k, v in compute_totals(bill.items or [], bill.is_gst_bill, bill.state_gst, bill.central_gst).items():
        setattr(bill, k, v)
    db.commit()
    db.refresh(bill)

    payment_changed = bill.payment_status != old_payment_status
    if items_changed:
        consistency.relink_bill_sites(db, admin.id, bill, old_site_ids, payment_changed=payment_changed)
    elif payment_changed:
        consistency.restatus_bill_sites(db, admin.id, bill)
    db.refresh(bill)
    return ok(expand_bills(db, admin.id, [bill])[0])


@router.delete("/{bill_id}")
def delete_bill(bill_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    bill = OwnedRepository(db, admin.id, Bill).get_or_404(bill_id, "Bill")
    linked = [
        s.id for s in OwnedRepository(db, admin.id, Site).query().filter(Site.bill_id == bill.id).all()
    ]
    db.delete(bill)
    db.commit()
    logger.info("bill_deleted", admin_id=str(admin.id), bill_id=str(bill_id))

    consistency.release_bill_sites(db, admin.id, bill_id, linked)
    return deleted("Bill")
