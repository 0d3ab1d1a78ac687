from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import Query

from ..config import settings
from ..schemas.base import ApiModel, Pagination
from ..services.ownership import ListParams


def ok(data: Any, pagination: Optional[Pagination] = None) -> Dict[str, Any]:
    if isinstance(data, ApiModel):
        data = data.to_wire()
    elif isinstance(data, list):
        data = [d.to_wire() if isinstance(d, ApiModel) else d for d in data]
    body: Dict[str, Any] = {"success": True, "data": data}
    if pagination is not None:
        body["pagination"] = pagination.to_wire()
    return body


def deleted(entity: str) -> Dict[str, Any]:
    return {"success": True, "message": f"{entity} deleted successfully"}


def list_params(
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(settings.default_page_size),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
) -> ListParams:
    return ListParams(search=search, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def dated_list_params(
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(settings.default_page_size),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    year: Optional[int] = Query(None, ge=1900, le=9999),
) -> ListParams:
    return ListParams(
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        start_date=start_date,
        end_date=end_date,
        year=year,
    )


def parse_include(raw: Optional[str], allowed: List[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip() in allowed]
