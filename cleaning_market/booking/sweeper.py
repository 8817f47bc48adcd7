"""Auto-completion sweep: accepted jobs whose end time has passed become completed."""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cleaning_market.models import ServiceRequest

from .clock import combine
from .states import RequestStatus

logger = logging.getLogger("cleaning_market.sweeper")


def find_past_due(db: Session, now: datetime) -> list[int]:
    """Ids of accepted requests whose date + end time is before ``now``."""
    rows = db.execute(
        select(ServiceRequest.id, ServiceRequest.date, ServiceRequest.end_time)
        .where(ServiceRequest.status == RequestStatus.ACCEPTED)
    ).all()

    past_due = []
    for row in rows:
        if combine(row.date, row.end_time) < now:
            past_due.append(row.id)
    return past_due


def _expire_swept(db: Session, ids: set[int]) -> None:
    """Expire loaded copies of swept rows so they reload status and completed_at."""
    for key, obj in list(db.identity_map.items()):
        if key[0] is ServiceRequest and key[1][0] in ids:
            db.expire(obj)


def complete_past_due(db: Session, now: datetime) -> int:
    """Bulk-transition past-due accepted requests to completed. Flushes, does not commit."""
    ids = find_past_due(db, now)
    if not ids:
        return 0

    # status is re-checked so a concurrent sweep or transition wins cleanly
    result = db.execute(
        update(ServiceRequest)
        .where(
            ServiceRequest.id.in_(ids),
            ServiceRequest.status == RequestStatus.ACCEPTED,
        )
        .values(status=RequestStatus.COMPLETED, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    db.flush()
    _expire_swept(db, set(ids))
    return result.rowcount or 0


def sweep(db: Session, now: datetime) -> int:
    """One sweep pass, committed. Returns the number of requests completed."""
    count = complete_past_due(db, now)
    db.commit()
    if count:
        logger.info("Auto-completed %d past-due request(s)", count)
    return count


def refresh_statuses(db: Session, now: datetime) -> int:
    """Sweep before a read or write that looks at status.

    A failing sweep is logged and rolled back; the caller carries on with
    whatever is already persisted.
    """
    try:
        return sweep(db, now)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Status sweep failed; continuing with stored state", exc_info=True)
        return 0
