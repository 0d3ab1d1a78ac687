from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..models.models import Admin
from ..schemas.dashboard import GroupBy, Period, TopClientsSort
from ..services import dashboard
from .common import ok


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/revenue-chart")
def revenue_chart(
    period: Period = Query(Period.last_30_days),
    group_by: Optional[GroupBy] = Query(None, alias="groupBy"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ok(dashboard.revenue_chart(db, admin.id, period=period, group_by=group_by))


@router.get("/site-status-distribution")
def site_status_distribution(db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    rows, total = dashboard.site_status_distribution(db, admin.id)
    body = ok(rows)
    body["total"] = total
    return body


@router.get("/expense-breakdown")
def expense_breakdown(
    period: Period = Query(Period.all),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ok(dashboard.expense_breakdown(db, admin.id, period=period))


@router.get("/top-clients")
def top_clients(
    limit: int = Query(10, ge=1, le=100),
    sort_by: TopClientsSort = Query(TopClientsSort.revenue, alias="sortBy"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ok(dashboard.top_clients(db, admin.id, limit=limit, sort_by=sort_by))
