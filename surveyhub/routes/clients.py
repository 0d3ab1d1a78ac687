import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin
from ..errors import Conflict
from ..models.models import Admin, Bill, Client, Site
from ..schemas.clients import ClientCreate, ClientUpdate, ClientResponse
from ..services.dashboard import PROJECT_COMPLETED, client_stats
from ..services.ownership import ListParams, OwnedRepository
from .common import ok, deleted, list_params


router = APIRouter(prefix="/clients", tags=["clients"])
logger = structlog.get_logger(__name__)


@router.get("")
def list_clients(
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    items, total = OwnedRepository(db, admin.id, Client).list(params)
    return ok([ClientResponse.model_validate(c) for c in items], params.pagination(total))


@router.get("/{client_id}")
def get_client(
    client_id: uuid.UUID,
    include_stats: bool = Query(False, alias="includeStats"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    c = OwnedRepository(db, admin.id, Client).get_or_404(client_id, "Client")
    out = ClientResponse.model_validate(c)
    if include_stats:
        out.stats = client_stats(db, admin.id, c.id)
    return ok(out)


@router.post("", status_code=201)
def create_client(payload: ClientCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    c = OwnedRepository(db, admin.id, Client).create(**payload.model_dump())
    db.commit()
    db.refresh(c)
    logger.info("client_created", admin_id=str(admin.id), client_id=str(c.id))
    return ok(ClientResponse.model_validate(c))


@router.put("/{client_id}")
def update_client(
    client_id: uuid.UUID,
    payload: ClientUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    c = OwnedRepository(db, admin.id, Client).get_or_404(client_id, "Client")
    for k, v in payload.model_dump(exclude_unset=True).items():
        if k == "name" and v is None:
            continue
        setattr(c, k, v)
    db.commit()
    db.refresh(c)
    return ok(ClientResponse.model_validate(c))


@router.delete("/{client_id}")
def delete_client(client_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    c = OwnedRepository(db, admin.id, Client).get_or_404(client_id, "Client")
    has_bills = OwnedRepository(db, admin.id, Bill).exists(customer_id=c.id)
    has_active_sites = (
        OwnedRepository(db, admin.id, Site).query()
        .filter(Site.client_id == c.id, Site.status != PROJECT_COMPLETED)
        .first()
        is not None
    )
    if has_bills or has_active_sites:
        raise Conflict("Cannot delete client with associated bills or active sites")
    db.delete(c)
    db.commit()
    logger.info("client_deleted", admin_id=str(admin.id), client_id=str(client_id))
    return deleted("Client")
