"""
On-demand rollups for the dashboard. Nothing here is persisted; every call
reads the admin's bills, expenses, sites and clients and aggregates in memory.
"""
import uuid
from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from ..models.models import Bill, Client, Expense, Site
from ..schemas.clients import ClientStats
from ..schemas.dashboard import (
    ExpenseBreakdownResponse,
    ExpenseTypeShare,
    GroupBy,
    Period,
    RevenueChartResponse,
    RevenuePoint,
    RevenueTotals,
    SiteStatusShare,
    TopClientRow,
    TopClientsSort,
)


PROJECT_COMPLETED = "PROJECT COMPLETED"

_AUTO_GROUP = {
    Period.last_7_days: GroupBy.day,
    Period.last_30_days: GroupBy.day,
    Period.last_90_days: GroupBy.week,
    Period.last_6_months: GroupBy.month,
    Period.last_year: GroupBy.month,
    Period.all: GroupBy.month,
}


def period_window(period: Period, today: Optional[date] = None) -> Tuple[Optional[date], date]:
    """(start, end) for a period keyword; start is None for ``all``."""
    end = today or date.today()
    period = Period(period)
    if period == Period.last_7_days:
        return end - timedelta(days=7), end
    if period == Period.last_30_days:
        return end - timedelta(days=30), end
    if period == Period.last_90_days:
        return end - timedelta(days=90), end
    if period == Period.last_6_months:
        return end - relativedelta(months=6), end
    if period == Period.last_year:
        return end - relativedelta(years=1), end
    return None, end


def default_group_by(period: Period) -> GroupBy:
    return _AUTO_GROUP[Period(period)]


def date_key(d: date, group_by: GroupBy) -> str:
    group_by = GroupBy(group_by)
    if group_by == GroupBy.week:
        # Calendar year with the ISO week number, so 2021-01-01 lands in "2021-W53"
        return f"{d.year}-W{d.isocalendar()[1]:02d}"
    if group_by == GroupBy.month:
        return f"{d.year:04d}-{d.month:02d}"
    if group_by == GroupBy.year:
        return str(d.year)
    return d.isoformat()


def _windowed(q, column, start: Optional[date], end: date):
    if start is None:
        return q
    return q.filter(column >= start, column <= end)


def revenue_chart(
    db: Session,
    admin_id: uuid.UUID,
    period: Period = Period.last_30_days,
    group_by: Optional[GroupBy] = None,
    today: Optional[date] = None,
) -> RevenueChartResponse:
    period = Period(period)
    group = GroupBy(group_by) if group_by else default_group_by(period)
    start, end = period_window(period, today)

    bills = _windowed(db.query(Bill).filter(Bill.admin_id == admin_id), Bill.bill_date, start, end).all()
    expenses = _windowed(db.query(Expense).filter(Expense.admin_id == admin_id), Expense.expense_date, start, end).all()

    buckets: Dict[str, RevenuePoint] = {}
    for bill in bills:
        key = date_key(bill.bill_date, group)
        point = buckets.setdefault(key, RevenuePoint(date=key))
        point.revenue += float(bill.total_amount or 0)
        point.bill_count += 1
    for expense in expenses:
        key = date_key(expense.expense_date, group)
        point = buckets.setdefault(key, RevenuePoint(date=key))
        point.expenses += float(expense.amount or 0)

    data = [buckets[k] for k in sorted(buckets)]
    totals = RevenueTotals()
    for point in data:
        point.profit = point.revenue - point.expenses
        totals.revenue += point.revenue
        totals.expenses += point.expenses
        totals.profit += point.profit
        totals.bill_count += point.bill_count

    return RevenueChartResponse(
        period=period.value,
        group_by=group.value,
        start_date=start,
        end_date=end,
        data=data,
        totals=totals,
    )


def site_status_distribution(db: Session, admin_id: uuid.UUID) -> Tuple[List[SiteStatusShare], int]:
    counts: "OrderedDict[str, int]" = OrderedDict()
    for (status,) in db.query(Site.status).filter(Site.admin_id == admin_id).order_by(Site.created_at.asc()).all():
        counts[status] = counts.get(status, 0) + 1
    total = sum(counts.values())
    if not total:
        return [], 0
    rows = [
        SiteStatusShare(status=status, count=count, percentage=round(count / total * 100, 1))
        for status, count in counts.items()
    ]
    return rows, total


def expense_breakdown(
    db: Session,
    admin_id: uuid.UUID,
    period: Period = Period.all,
    today: Optional[date] = None,
) -> ExpenseBreakdownResponse:
    period = Period(period)
    start, end = period_window(period, today)
    q = _windowed(db.query(Expense).filter(Expense.admin_id == admin_id), Expense.expense_date, start, end)

    by_type: "OrderedDict[str, List[float]]" = OrderedDict()
    total = 0.0
    for expense in q.order_by(Expense.expense_date.asc()).all():
        amount = float(expense.amount or 0)
        entry = by_type.setdefault(expense.type, [0.0, 0])
        entry[0] += amount
        entry[1] += 1
        total += amount

    rows = [
        ExpenseTypeShare(
            type=kind,
            amount=amount,
            percentage=round(amount / total * 100, 2) if total else 0.0,
            count=count,
        )
        for kind, (amount, count) in by_type.items()
    ]
    return ExpenseBreakdownResponse(period=period.value, by_type=rows, total=total)


def _stats_for(sites: Iterable[Site], bills: Iterable[Bill]) -> ClientStats:
    sites = list(sites)
    bills = list(bills)
    total_revenue = sum(float(b.total_amount or 0) for b in bills)
    paid = sum(float(b.total_amount or 0) for b in bills if b.payment_status == "PAID")
    completed = sum(1 for s in sites if s.status == PROJECT_COMPLETED)
    return ClientStats(
        total_projects=len(sites),
        active_projects=len(sites) - completed,
        completed_projects=completed,
        total_bills=len(bills),
        total_revenue=total_revenue,
        paid_amount=paid,
        pending_amount=total_revenue - paid,
    )


def client_stats(db: Session, admin_id: uuid.UUID, client_id: uuid.UUID) -> ClientStats:
    sites = db.query(Site).filter(Site.admin_id == admin_id, Site.client_id == client_id).all()
    bills = db.query(Bill).filter(Bill.admin_id == admin_id, Bill.customer_id == client_id).all()
    return _stats_for(sites, bills)


def top_clients(
    db: Session,
    admin_id: uuid.UUID,
    limit: int = 10,
    sort_by: TopClientsSort = TopClientsSort.revenue,
) -> List[TopClientRow]:
    sort_by = TopClientsSort(sort_by)
    clients = db.query(Client).filter(Client.admin_id == admin_id).order_by(Client.created_at.asc()).all()
    sites = db.query(Site).filter(Site.admin_id == admin_id).all()
    bills = db.query(Bill).filter(Bill.admin_id == admin_id).all()

    sites_by_client: Dict[uuid.UUID, List[Site]] = {}
    for s in sites:
        if s.client_id is not None:
            sites_by_client.setdefault(s.client_id, []).append(s)
    bills_by_client: Dict[uuid.UUID, List[Bill]] = {}
    for b in bills:
        bills_by_client.setdefault(b.customer_id, []).append(b)

    rows = []
    for c in clients:
        stats = _stats_for(sites_by_client.get(c.id, []), bills_by_client.get(c.id, []))
        rows.append(TopClientRow(
            id=c.id,
            name=c.name,
            company=c.company,
            total_projects=stats.total_projects,
            completed_projects=stats.completed_projects,
            active_projects=stats.active_projects,
            total_revenue=stats.total_revenue,
            paid_amount=stats.paid_amount,
            pending_amount=stats.pending_amount,
        ))

    if sort_by == TopClientsSort.projects:
        rows.sort(key=lambda r: r.total_projects, reverse=True)
    else:
        rows.sort(key=lambda r: r.total_revenue, reverse=True)
    return rows[:max(0, limit)]
