"""
Side effects that keep Site and Instrument status fields in step with
bill and site writes.

Each function runs after the primary write has been committed, commits its
own changes, and never raises: a failure is rolled back and logged as
``<event>_cascade_failed`` so the request that triggered it still succeeds.
Every update is pinned to the admin that owns the primary entity.
"""
import functools
import uuid
from typing import Any, Iterable, List, Sequence

import structlog
from sqlalchemy.orm import Session

from ..models.models import Bill, Instrument, Site
from .billing import site_status_for_payment


logger = structlog.get_logger(__name__)

INSTRUMENT_AVAILABLE = "available"
INSTRUMENT_IN_USE = "in-use"
SITE_RELEASED_STATUS = "DRAWING COMPLETED"


def _uuids(ids: Iterable[Any]) -> List[uuid.UUID]:
    out = []
    for i in ids or []:
        if i is None:
            continue
        out.append(i if isinstance(i, uuid.UUID) else uuid.UUID(str(i)))
    return out


def _strs(ids: Iterable[Any]) -> List[str]:
    return [str(i) for i in _uuids(ids)]


def best_effort(event: str):
    def deco(fn):
        @functools.wraps(fn)
        def wrapper(db: Session, admin_id: uuid.UUID, *args, **kwargs):
            try:
                result = fn(db, admin_id, *args, **kwargs)
                db.commit()
                return result
            except Exception as exc:
                db.rollback()
                logger.error(f"{event}_cascade_failed", admin_id=str(admin_id), error=str(exc), exc_info=exc)
                return None
        return wrapper
    return deco


def _sites(db: Session, admin_id: uuid.UUID):
    return db.query(Site).filter(Site.admin_id == admin_id)


def _instruments(db: Session, admin_id: uuid.UUID):
    return db.query(Instrument).filter(Instrument.admin_id == admin_id)


# Bill -> Site

@best_effort("bill_sites_link")
def link_bill_sites(db: Session, admin_id: uuid.UUID, bill: Bill) -> int:
    site_ids = _uuids(bill.site_ids)
    if not site_ids:
        return 0
    status = site_status_for_payment(bill.payment_status)
    count = _sites(db, admin_id).filter(Site.id.in_(site_ids)).update(
        {Site.bill_id: bill.id, Site.status: status}, synchronize_session=False
    )
    logger.info("bill_sites_linked", admin_id=str(admin_id), bill_id=str(bill.id), site_ids=_strs(site_ids), status=status, updated=count)
    return count


@best_effort("bill_sites_restatus")
def restatus_bill_sites(db: Session, admin_id: uuid.UUID, bill: Bill) -> int:
    site_ids = _uuids(bill.site_ids)
    if not site_ids:
        return 0
    status = site_status_for_payment(bill.payment_status)
    count = _sites(db, admin_id).filter(Site.id.in_(site_ids)).update(
        {Site.status: status}, synchronize_session=False
    )
    logger.info("bill_sites_restatused", admin_id=str(admin_id), bill_id=str(bill.id), site_ids=_strs(site_ids), status=status, updated=count)
    return count


def _release_dropped(db: Session, admin_id: uuid.UUID, bill_id: uuid.UUID, dropped: Sequence[uuid.UUID]) -> int:
    # A dropped site that already moved to another bill keeps that link
    if not dropped:
        return 0
    return _sites(db, admin_id).filter(Site.bill_id == bill_id, Site.id.in_(dropped)).update(
        {Site.bill_id: None, Site.status: SITE_RELEASED_STATUS}, synchronize_session=False
    )


@best_effort("bill_sites_release")
def release_bill_sites(db: Session, admin_id: uuid.UUID, bill_id: uuid.UUID, site_ids: Iterable[Any]) -> int:
    """
    Runs after the bill row is gone, so the caller collects the linked site ids
    beforehand; the foreign key may already have cleared ``bill_id``.
    """
    ids = _uuids(site_ids)
    if not ids:
        return 0
    count = _sites(db, admin_id).filter(Site.id.in_(ids)).update(
        {Site.bill_id: None, Site.status: SITE_RELEASED_STATUS}, synchronize_session=False
    )
    logger.info("bill_sites_released", admin_id=str(admin_id), bill_id=str(bill_id), site_ids=_strs(ids), updated=count)
    return count


@best_effort("bill_sites_relink")
def relink_bill_sites(db: Session, admin_id: uuid.UUID, bill: Bill, old_site_ids: Iterable[Any], payment_changed: bool = False) -> None:
    """Items changed: release sites that dropped off, link the new ones."""
    old = _uuids(old_site_ids)
    new = _uuids(bill.site_ids)
    dropped = [i for i in old if i not in new]
    added = [i for i in new if i not in old]
    status = site_status_for_payment(bill.payment_status)

    released = _release_dropped(db, admin_id, bill.id, dropped)
    if added:
        _sites(db, admin_id).filter(Site.id.in_(added)).update(
            {Site.bill_id: bill.id, Site.status: status}, synchronize_session=False
        )
    if payment_changed and new:
        _sites(db, admin_id).filter(Site.id.in_(new)).update(
            {Site.status: status}, synchronize_session=False
        )
    logger.info(
        "bill_sites_relinked",
        admin_id=str(admin_id),
        bill_id=str(bill.id),
        dropped=_strs(dropped),
        added=_strs(added),
        released=released,
        status=status,
    )


# Site -> Instrument

def _claim(db: Session, admin_id: uuid.UUID, ids: Sequence[uuid.UUID]) -> int:
    # Only available instruments move; anything else is left as it is
    if not ids:
        return 0
    return _instruments(db, admin_id).filter(
        Instrument.id.in_(ids), Instrument.status == INSTRUMENT_AVAILABLE
    ).update({Instrument.status: INSTRUMENT_IN_USE}, synchronize_session=False)


def _free(db: Session, admin_id: uuid.UUID, ids: Sequence[uuid.UUID]) -> int:
    if not ids:
        return 0
    return _instruments(db, admin_id).filter(Instrument.id.in_(ids)).update(
        {Instrument.status: INSTRUMENT_AVAILABLE}, synchronize_session=False
    )


@best_effort("site_instruments_claim")
def claim_instruments(db: Session, admin_id: uuid.UUID, site_id: uuid.UUID, instrument_ids: Iterable[Any]) -> int:
    ids = _uuids(instrument_ids)
    count = _claim(db, admin_id, ids)
    logger.info("site_instruments_claimed", admin_id=str(admin_id), site_id=str(site_id), instrument_ids=_strs(ids), updated=count)
    return count


@best_effort("site_instruments_swap")
def swap_instruments(db: Session, admin_id: uuid.UUID, site_id: uuid.UUID, old_ids: Iterable[Any], new_ids: Iterable[Any]) -> None:
    old = _uuids(old_ids)
    new = _uuids(new_ids)
    removed = [i for i in old if i not in new]
    added = [i for i in new if i not in old]
    freed = _free(db, admin_id, removed)
    claimed = _claim(db, admin_id, added)
    logger.info(
        "site_instruments_swapped",
        admin_id=str(admin_id),
        site_id=str(site_id),
        removed=_strs(removed),
        added=_strs(added),
        freed=freed,
        claimed=claimed,
    )


@best_effort("site_instruments_release")
def release_instruments(db: Session, admin_id: uuid.UUID, site_id: uuid.UUID, instrument_ids: Iterable[Any]) -> int:
    ids = _uuids(instrument_ids)
    count = _free(db, admin_id, ids)
    logger.info("site_instruments_released", admin_id=str(admin_id), site_id=str(site_id), instrument_ids=_strs(ids), updated=count)
    return count
