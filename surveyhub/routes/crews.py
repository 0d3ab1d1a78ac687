import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import get_current_admin, get_password_hash
from ..errors import Conflict
from ..models.models import Admin, Crew
from ..schemas.crews import CrewCreate, CrewUpdate, CrewResponse
from ..services.ownership import ListParams, OwnedRepository
from .common import ok, deleted, list_params


router = APIRouter(prefix="/crews", tags=["crews"])
logger = structlog.get_logger(__name__)


def _username_taken(repo: OwnedRepository, username: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    q = repo.query().filter(Crew.username == username)
    if exclude_id is not None:
        q = q.filter(Crew.id != exclude_id)
    return q.first() is not None


@router.get("")
def list_crews(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    params.filters = {"is_active": is_active}
    items, total = OwnedRepository(db, admin.id, Crew).list(params)
    return ok([CrewResponse.model_validate(c) for c in items], params.pagination(total))


@router.get("/{crew_id}")
def get_crew(crew_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    c = OwnedRepository(db, admin.id, Crew).get_or_404(crew_id, "Crew member")
    return ok(CrewResponse.model_validate(c))


@router.post("", status_code=201)
def create_crew(payload: CrewCreate, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    repo = OwnedRepository(db, admin.id, Crew)
    if _username_taken(repo, payload.username):
        raise Conflict("Username already exists")
    data = payload.model_dump()
    data["password_hash"] = get_password_hash(data.pop("password"))
    c = repo.create(**data)
    db.commit()
    db.refresh(c)
    logger.info("crew_created", admin_id=str(admin.id), crew_id=str(c.id))
    return ok(CrewResponse.model_validate(c))


@router.put("/{crew_id}")
def update_crew(
    crew_id: uuid.UUID,
    payload: CrewUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    repo = OwnedRepository(db, admin.id, Crew)
    c = repo.get_or_404(crew_id, "Crew member")
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "username" in data and data["username"] != c.username and _username_taken(repo, data["username"], exclude_id=c.id):
        raise Conflict("Username already exists")
    if "password" in data:
        data["password_hash"] = get_password_hash(data.pop("password"))
    for k, v in data.items():
        setattr(c, k, v)
    db.commit()
    db.refresh(c)
    return ok(CrewResponse.model_validate(c))


@router.delete("/{crew_id}")
def delete_crew(crew_id: uuid.UUID, db: Session = Depends(get_db), admin: Admin = Depends(get_current_admin)):
    c = OwnedRepository(db, admin.id, Crew).get_or_404(crew_id, "Crew member")
    db.delete(c)
    db.commit()
    logger.info("crew_deleted", admin_id=str(admin.id), crew_id=str(crew_id))
    return deleted("Crew member")
