import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..models.models import Admin, Crew, Expense, Site
from ..schemas.crews import CrewSummary
from ..schemas.expenses import ExpenseCreate, ExpenseResponse, ExpenseType, ExpenseUpdate
from ..schemas.sites import SiteSummary
from ..services.ownership import ListParams, OwnedRepository, require_owned
from .common import ok, deleted, dated_list_params


router = APIRouter(prefix="/expenses", tags=["expenses"])
logger = structlog.get_logger(__name__)


def _check_references(db: Session, admin_id: uuid.UUID, data: dict) -> None:
    if data.get("site_id") is not None:
        require_owned(db, admin_id, Site, [data["site_id"]], "siteId")
    if data.get("crew_id") is not None:
        require_owned(db, admin_id, Crew, [data["crew_id"]], "crewId")


def expand_expenses(db: Session, admin_id: uuid.UUID, expenses: List[Expense]) -> List[ExpenseResponse]:
    out = [ExpenseResponse.model_validate(e) for e in expenses]
    sites = {s.id: s for s in OwnedRepository(db, admin_id, Site).by_ids({e.site_id for e in expenses if e.site_id})}
    crews = {c.id: c for c in OwnedRepository(db, admin_id, Crew).by_ids({e.crew_id for e in expenses if e.crew_id})}
    for e, o in zip(expenses, out):
        if e.site_id in sites:
            o.site = SiteSummary.model_validate(sites[e.site_id])
        if e.crew_id in crews:
            o.crew = CrewSummary.model_validate(crews[e.crew_id])
    return out


@router.get("")
def list_expenses(
    type: Optional[ExpenseType] = Query(None),
    site_id: Optional[uuid.UUID] = Query(None, alias="siteId"),
    crew_id: Optional[uuid.UUID] = Query(None, alias="crewId"),
    params: ListParams = Depends(dated_list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {"type": type.value if type else None, "site_id": site_id, "crew_id": crew_id}
    items, total = OwnedRepository(db, admin.id, Expense).list(params)
    return ok(expand_expenses(db, admin.id, items), params.pagination(total))


@router.get("/{expense_id}")
def get_expense(expense_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    e = OwnedRepository(db, admin.id, Expense).get_or_404(expense_id, "Expense")
    return ok(expand_expenses(db, admin.id, [e])[0])


@router.post("", status_code=201)
def create_expense(payload: ExpenseCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    data = payload.model_dump()
    _check_references(db, admin.id, data)
    e = OwnedRepository(db, admin.id, Expense).create(**data)
    db.commit()
    db.refresh(e)
    logger.info("expense_created", admin_id=str(admin.id), expense_id=str(e.id), amount=e.amount)
    return ok(expand_expenses(db, admin.id, [e])[0])


@router.put("/{expense_id}")
def update_expense(
    expense_id: uuid.UUID,
    payload: ExpenseUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    e = OwnedRepository(db, admin.id, Expense).get_or_404(expense_id, "Expense")
    data = payload.model_dump(exclude_unset=True)
    for required in ("type", "amount", "expense_date"):
        if required in data and data[required] is None:
            data.pop(required)
    _check_references(db, admin.id, data)
    for k, v in data.items():
        setattr(e, k, v)
    db.commit()
    db.refresh(e)
    return ok(expand_expenses(db, admin.id, [e])[0])


@router.delete("/{expense_id}")
def delete_expense(expense_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    e = OwnedRepository(db, admin.id, Expense).get_or_404(expense_id, "Expense")
    db.delete(e)
    db.commit()
    logger.info("expense_deleted", admin_id=str(admin.id), expense_id=str(expense_id))
    return deleted("Expense")
