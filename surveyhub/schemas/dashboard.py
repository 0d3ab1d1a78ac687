import uuid
import datetime as dt
from typing import List, Optional
from enum import Enum

from .base import ApiModel


class Period(str, Enum):
    last_7_days = "7days"
    last_30_days = "30days"
    last_90_days = "90days"
    last_6_months = "6months"
    last_year = "1year"
    all = "all"


class GroupBy(str, Enum):
    day = "day"
    week = "week"
    month = "month"
    year = "year"


class TopClientsSort(str, Enum):
    revenue = "revenue"
    projects = "projects"


class RevenuePoint(ApiModel):
    date: str
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    bill_count: int = 0


class RevenueTotals(ApiModel):
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    bill_count: int = 0


class RevenueChartResponse(ApiModel):
    period: str
    group_by: str
    start_date: Optional[dt.date] = None
    end_date: dt.date
    data: List[RevenuePoint]
    totals: RevenueTotals


class SiteStatusShare(ApiModel):
    status: str
    count: int
    percentage: float


class ExpenseTypeShare(ApiModel):
    type: str
    amount: float
    percentage: float
    count: int


class ExpenseBreakdownResponse(ApiModel):
    period: str
    by_type: List[ExpenseTypeShare]
    total: float


class TopClientRow(ApiModel):
    id: uuid.UUID
    name: str
    company: Optional[str] = None
    total_projects: int
    completed_projects: int
    active_projects: int
    total_revenue: float
    paid_amount: float
    pending_amount: float
