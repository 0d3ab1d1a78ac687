"""
Admin-scoped data access.

Every read and write on a business entity goes through ``OwnedRepository``,
which adds the ``admin_id`` predicate itself; callers never build that
filter by hand. What a list endpoint may search, sort and filter on is
declared once per model in ``QUERY_SPECS`` and checked at startup by
``validate_query_specs``.
"""
import math
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from pydantic.alias_generators import to_camel
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import NotFound, ValidationFailed
from ..models.models import Client, Crew, Vehicle, Instrument, Site, Bill, Expense, Enquiry
from ..schemas.base import Pagination


@dataclass(frozen=True)
class RelatedSearch:
    """Match rows whose foreign key points at an owned row of ``model`` with a matching text field."""
    fk: str
    model: Type[Any]
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class QuerySpec:
    search_fields: Tuple[str, ...]
    sortable: Tuple[str, ...]
    default_sort: str
    filters: Tuple[str, ...] = ()
    date_field: Optional[str] = None
    related_search: Tuple[RelatedSearch, ...] = ()

    def sort_column(self, sort_by: Optional[str]) -> str:
        if not sort_by:
            return self.default_sort
        for name in self.sortable:
            if sort_by in (name, to_camel(name)):
                return name
        raise ValidationFailed.for_field("sortBy", f"Cannot sort by '{sort_by}'")


_COMMON_SORT = ("created_at", "updated_at")

QUERY_SPECS: Dict[Type[Any], QuerySpec] = {
    Client: QuerySpec(
        search_fields=("name", "email", "phone", "company"),
        sortable=_COMMON_SORT + ("name", "company"),
        default_sort="created_at",
    ),
    Crew: QuerySpec(
        search_fields=("name", "username"),
        sortable=_COMMON_SORT + ("name", "username"),
        default_sort="created_at",
        filters=("is_active",),
    ),
    Vehicle: QuerySpec(
        search_fields=("name", "registration_number"),
        sortable=_COMMON_SORT + ("name", "registration_number", "year", "insurance_expiry", "pollution_expiry", "service_due_date"),
        default_sort="created_at",
        filters=("type", "status"),
    ),
    Instrument: QuerySpec(
        search_fields=("name", "serial_number"),
        sortable=_COMMON_SORT + ("name", "serial_number", "last_serviced_on"),
        default_sort="created_at",
        filters=("type", "status"),
    ),
    Site: QuerySpec(
        search_fields=("name", "address", "city"),
        sortable=_COMMON_SORT + ("name", "city", "start_date", "end_date", "status"),
        default_sort="start_date",
        filters=("status", "client_id"),
        date_field="start_date",
    ),
    Bill: QuerySpec(
        search_fields=("bill_number",),
        sortable=_COMMON_SORT + ("bill_number", "bill_date", "total_amount", "payment_status"),
        default_sort="bill_date",
        filters=("customer_id", "payment_status"),
        date_field="bill_date",
        related_search=(RelatedSearch(fk="customer_id", model=Client, fields=("name",)),),
    ),
    Expense: QuerySpec(
        search_fields=("description",),
        sortable=_COMMON_SORT + ("expense_date", "amount", "type"),
        default_sort="expense_date",
        filters=("type", "site_id", "crew_id"),
        date_field="expense_date",
    ),
    Enquiry: QuerySpec(
        search_fields=("subject", "message"),
        sortable=_COMMON_SORT + ("subject", "status", "follow_up_date"),
        default_sort="created_at",
        filters=("status",),
    ),
}


def validate_query_specs() -> None:
    """Fail fast when a QuerySpec names a column its model does not have."""
    for model, spec in QUERY_SPECS.items():
        columns = set(model.__table__.columns.keys())
        named = set(spec.search_fields) | set(spec.sortable) | set(spec.filters) | {spec.default_sort}
        if spec.date_field:
            named.add(spec.date_field)
        for rel in spec.related_search:
            named.add(rel.fk)
            missing_rel = set(rel.fields) - set(rel.model.__table__.columns.keys())
            if missing_rel:
                raise RuntimeError(f"{rel.model.__name__} has no columns {sorted(missing_rel)}")
        missing = named - columns
        if missing:
            raise RuntimeError(f"{model.__name__} query spec names unknown columns {sorted(missing)}")
        if spec.default_sort not in spec.sortable:
            raise RuntimeError(f"{model.__name__} default sort '{spec.default_sort}' is not sortable")


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class ListParams:
    search: Optional[str] = None
    page: int = 1
    limit: int = 10
    sort_by: Optional[str] = None
    sort_order: str = "desc"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    year: Optional[int] = None
    filters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.page = max(1, int(self.page or 1))
        self.limit = min(max(1, int(self.limit or settings.default_page_size)), settings.max_page_size)
        self.sort_order = (self.sort_order or "desc").lower()
        if self.sort_order not in ("asc", "desc"):
            raise ValidationFailed.for_field("sortOrder", "sortOrder must be 'asc' or 'desc'")
        if self.search is not None:
            self.search = self.search.strip() or None

    def date_window(self) -> Tuple[Optional[date], Optional[date]]:
        if self.year is not None:
            return date(self.year, 1, 1), date(self.year, 12, 31)
        return self.start_date, self.end_date

    def pagination(self, total: int) -> Pagination:
        return Pagination(page=self.page, limit=self.limit, total=total, total_pages=math.ceil(total / self.limit))


class OwnedRepository:
    """All access to one model, pinned to one admin."""

    def __init__(self, db: Session, admin_id: uuid.UUID, model: Type[Any]):
        self.db = db
        self.admin_id = admin_id
        self.model = model

    def query(self):
        return self.db.query(self.model).filter(self.model.admin_id == self.admin_id)

    def get(self, id: uuid.UUID):
        return self.query().filter(self.model.id == id).first()

    def get_or_404(self, id: uuid.UUID, label: Optional[str] = None):
        row = self.get(id)
        if row is None:
            raise NotFound(f"{label or self.model.__name__} not found")
        return row

    def by_ids(self, ids: Iterable[Any]) -> List[Any]:
        wanted = [_as_uuid(i) for i in ids]
        if not wanted:
            return []
        return self.query().filter(self.model.id.in_(wanted)).all()

    def create(self, **data):
        data.pop("admin_id", None)
        row = self.model(admin_id=self.admin_id, **data)
        self.db.add(row)
        return row

    def exists(self, **equals) -> bool:
        q = self.query()
        for name, value in equals.items():
            q = q.filter(getattr(self.model, name) == value)
        return q.first() is not None

    def list(self, params: ListParams) -> Tuple[List[Any], int]:
        spec = QUERY_SPECS[self.model]
        model = self.model
        q = self.query()

        if params.search:
            pattern = _like(params.search)
            clauses = [getattr(model, f).ilike(pattern, escape="\\") for f in spec.search_fields]
            for rel in spec.related_search:
                related_ids = select(rel.model.id).where(
                    rel.model.admin_id == self.admin_id,
                    or_(*[getattr(rel.model, f).ilike(pattern, escape="\\") for f in rel.fields]),
                )
                clauses.append(getattr(model, rel.fk).in_(related_ids))
            q = q.filter(or_(*clauses))

        for name, value in params.filters.items():
            if value is None:
                continue
            if name not in spec.filters:
                raise ValidationFailed.for_field(to_camel(name), f"Cannot filter by '{to_camel(name)}'")
            q = q.filter(getattr(model, name) == value)

        if spec.date_field:
            start, end = params.date_window()
            column = getattr(model, spec.date_field)
            if start is not None:
                q = q.filter(column >= start)
            if end is not None:
                q = q.filter(column <= end)

        total = q.count()

        column = getattr(model, spec.sort_column(params.sort_by))
        if params.sort_order == "asc":
            q = q.order_by(column.asc(), model.id.asc())
        else:
            q = q.order_by(column.desc(), model.id.desc())
        items = q.offset((params.page - 1) * params.limit).limit(params.limit).all()
        return items, total


def _as_uuid(value: Any) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def require_owned(db: Session, admin_id: uuid.UUID, model: Type[Any], ids: Sequence[Any], field_name: str) -> None:
    """Reject a write that references ids outside the caller's partition."""
    wanted = {_as_uuid(i) for i in ids if i is not None}
    if not wanted:
        return
    found = {
        row_id
        for (row_id,) in db.query(model.id).filter(model.admin_id == admin_id, model.id.in_(wanted)).all()
    }
    missing = wanted - found
    if missing:
        label = model.__name__
        raise ValidationFailed.for_field(field_name, f"{label} not found: {', '.join(sorted(str(m) for m in missing))}")
