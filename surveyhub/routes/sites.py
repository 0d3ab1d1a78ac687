import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..models.models import Admin, Bill, Client, Crew, Instrument, Site, Vehicle
from ..schemas.clients import ClientSummary
from ..schemas.crews import CrewSummary
from ..schemas.fleet import InstrumentSummary, VehicleSummary
from ..schemas.sites import BillSummary, SiteCreate, SiteResponse, SiteStatus, SiteUpdate
from ..services import consistency
from ..services.ownership import ListParams, OwnedRepository, require_owned
from .common import ok, deleted, dated_list_params, parse_include


router = APIRouter(prefix="/sites", tags=["sites"])
logger = structlog.get_logger(__name__)

SITE_INCLUDES = ["client", "crews", "instruments", "vehicle", "bill"]
LIST_INCLUDES = ["client", "vehicle", "crews", "instruments"]


def _check_references(db: Session, admin_id: uuid.UUID, data: dict) -> None:
    if data.get("client_id") is not None:
        require_owned(db, admin_id, Client, [data["client_id"]], "clientId")
    if data.get("vehicle_id") is not None:
        require_owned(db, admin_id, Vehicle, [data["vehicle_id"]], "vehicleId")
    if data.get("crew_ids"):
        require_owned(db, admin_id, Crew, data["crew_ids"], "crewIds")
    if data.get("instrument_ids"):
        require_owned(db, admin_id, Instrument, data["instrument_ids"], "instrumentIds")


def _dedupe(ids) -> List[str]:
    out: List[str] = []
    for i in ids or []:
        s = str(i)
        if s not in out:
            out.append(s)
    return out


def expand_sites(db: Session, admin_id: uuid.UUID, sites: List[Site], include: List[str]) -> List[SiteResponse]:
    """Serialize sites, embedding the requested related summaries in batched lookups."""
    out = [SiteResponse.model_validate(s) for s in sites]
    if not sites or not include:
        return out

    def _index(model, ids):
        return {row.id: row for row in OwnedRepository(db, admin_id, model).by_ids(ids)}

    if "client" in include:
        clients = _index(Client, {s.client_id for s in sites if s.client_id})
        for s, o in zip(sites, out):
            c = clients.get(s.client_id)
            o.client = ClientSummary.model_validate(c) if c else None
    if "vehicle" in include:
        vehicles = _index(Vehicle, {s.vehicle_id for s in sites if s.vehicle_id})
        for s, o in zip(sites, out):
            v = vehicles.get(s.vehicle_id)
            o.vehicle = VehicleSummary.model_validate(v) if v else None
    if "bill" in include:
        bills = _index(Bill, {s.bill_id for s in sites if s.bill_id})
        for s, o in zip(sites, out):
            b = bills.get(s.bill_id)
            o.bill = BillSummary.model_validate(b) if b else None
    if "crews" in include:
        crews = _index(Crew, {i for s in sites for i in _as_ids(s.crew_ids)})
        for s, o in zip(sites, out):
            o.crews = [CrewSummary.model_validate(crews[i]) for i in _as_ids(s.crew_ids) if i in crews]
    if "instruments" in include:
        instruments = _index(Instrument, {i for s in sites for i in _as_ids(s.instrument_ids)})
        for s, o in zip(sites, out):
            o.instruments = [InstrumentSummary.model_validate(instruments[i]) for i in _as_ids(s.instrument_ids) if i in instruments]
    return out


def _as_ids(raw) -> List[uuid.UUID]:
    return [uuid.UUID(str(i)) for i in raw or []]


@router.get("")
def list_sites(
    status: Optional[SiteStatus] = Query(None),
    client_id: Optional[uuid.UUID] = Query(None, alias="clientId"),
    params: ListParams = Depends(dated_list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {"status": status.value if status else None, "client_id": client_id}
    items, total = OwnedRepository(db, admin.id, Site).list(params)
    return ok(expand_sites(db, admin.id, items, LIST_INCLUDES), params.pagination(total))


@router.get("/{site_id}")
def get_site(
    site_id: uuid.UUID,
    include: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    site = OwnedRepository(db, admin.id, Site).get_or_404(site_id, "Site")
    return ok(expand_sites(db, admin.id, [site], parse_include(include, SITE_INCLUDES))[0])


@router.post("", status_code=201)
def create_site(payload: SiteCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    data = payload.model_dump()
    _check_references(db, admin.id, data)
    data["crew_ids"] = _dedupe(data.get("crew_ids"))
    data["instrument_ids"] = _dedupe(data.get("instrument_ids"))

    site = OwnedRepository(db, admin.id, Site).create(**data)
    db.commit()
    db.refresh(site)
    logger.info("site_created", admin_id=str(admin.id), site_id=str(site.id))

    if site.instrument_ids:
        consistency.claim_instruments(db, admin.id, site.id, site.instrument_ids)
        db.refresh(site)
    return ok(SiteResponse.model_validate(site))


@router.put("/{site_id}")
def update_site(
    site_id: uuid.UUID,
    payload: SiteUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    site = OwnedRepository(db, admin.id, Site).get_or_404(site_id, "Site")
    data = payload.model_dump(exclude_unset=True)
    for required in ("name", "address", "city", "state", "start_date", "status", "crew_ids", "instrument_ids"):
        if required in data and data[required] is None:
            data.pop(required)
    _check_references(db, admin.id, data)

    old_instruments = list(site.instrument_ids or [])
    instruments_changed = "instrument_ids" in data
    if "crew_ids" in data:
        data["crew_ids"] = _dedupe(data["crew_ids"])
    if instruments_changed:
        data["instrument_ids"] = _dedupe(data["instrument_ids"])

    for k, v in data.items():
        setattr(site, k, v)
    db.commit()

    if instruments_changed:
        consistency.swap_instruments(db, admin.id, site.id, old_instruments, data["instrument_ids"])
    db.refresh(site)
    return ok(SiteResponse.model_validate(site))


@router.delete("/{site_id}")
def delete_site(site_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    site = OwnedRepository(db, admin.id, Site).get_or_404(site_id, "Site")
    instrument_ids = list(site.instrument_ids or [])
    db.delete(site)
    db.commit()
    logger.info("site_deleted", admin_id=str(admin.id), site_id=str(site_id))

    if instrument_ids:
        consistency.release_instruments(db, admin.id, site_id, instrument_ids)
    return deleted("Site")
