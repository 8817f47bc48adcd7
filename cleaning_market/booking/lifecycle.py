"""Booking lifecycle: creating requests, cleaner status changes, rating.

Every entry point runs the auto-completion sweep first so callers never act
on a stale ``accepted`` job that should already be ``completed``. Each
operation takes a single ``now`` and uses it for every comparison it makes.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cleaning_market.models import Cleaner, Client, OfferApplication, ServiceRequest

from .drafts import DirectRequestDraft, OfferDraft
from .errors import ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from .states import ACTIVE_DIRECT_STATUSES, CLEANER_TARGET_STATUSES, RequestStatus, RequestType
from .sweeper import refresh_statuses

logger = logging.getLogger("cleaning_market.lifecycle")

REVIEW_MAX_LENGTH = 500


def get_request(db: Session, request_id: int) -> ServiceRequest:
    request = db.get(ServiceRequest, request_id)
    if request is None:
        raise NotFoundError("Request not found")
    return request


def _require_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


def create_direct_request(
    db: Session,
    client_id: int,
    cleaner_id: Optional[int],
    service: str,
    date: Optional[date],
    start_time: str,
    end_time: str,
    note: Optional[str] = None,
    *,
    now: datetime,
) -> ServiceRequest:
    """Client books a specific cleaner. New request starts ``pending``."""
    draft = DirectRequestDraft(
        cleaner_id=cleaner_id,
        service=service,
        date=date,
        start_time=start_time,
        end_time=end_time,
        note=note,
    )
    request = draft.build(client_id, now)

    _require_client(db, client_id)
    if db.get(Cleaner, cleaner_id) is None:
        raise NotFoundError("Cleaner not found")

    db.add(request)
    db.commit()
    logger.info(
        "Client %d requested cleaner %d for %s %s-%s (request %d)",
        client_id, cleaner_id, request.date, request.start_time, request.end_time, request.id,
    )
    return request


def create_offer(
    db: Session,
    client_id: int,
    service: str,
    date: Optional[date],
    start_time: str,
    end_time: str,
    budget: Optional[float],
    deadline: Optional[datetime],
    note: Optional[str] = None,
    *,
    now: datetime,
) -> ServiceRequest:
    """Client posts an open offer. New request starts ``open`` with no cleaner."""
    draft = OfferDraft(
        service=service,
        date=date,
        start_time=start_time,
        end_time=end_time,
        budget=budget,
        deadline=deadline,
        note=note,
    )
    request = draft.build(client_id, now)
    _require_client(db, client_id)

    db.add(request)
    db.commit()
    logger.info("Client %d opened offer %d (budget %.2f)", client_id, request.id, request.budget)
    return request


def update_request_status(
    db: Session,
    request_id: int,
    acting_cleaner_id: int,
    new_status: str,
    *,
    now: datetime,
) -> ServiceRequest:
    """Cleaner accepts, declines, cancels or completes a request assigned to them.

    Checks, in order: request exists, caller is the assigned cleaner,
    request not already completed, target status allowed.
    """
    refresh_statuses(db, now)

    request = get_request(db, request_id)
    if request.cleaner_id is None or request.cleaner_id != acting_cleaner_id:
        raise ForbiddenError("Not authorized to update this request")

    if request.status == RequestStatus.COMPLETED:
        raise InvalidTransitionError("Cannot modify completed requests")

    if new_status not in CLEANER_TARGET_STATUSES:
        raise ValidationError("Invalid status")
    target = RequestStatus(new_status)

    previous = request.status
    request.status = target
    if target == RequestStatus.ACCEPTED:
        request.accepted_at = now
    elif target == RequestStatus.COMPLETED:
        request.completed_at = now

    db.commit()
    logger.info(
        "Cleaner %d moved request %d from %s to %s",
        acting_cleaner_id, request.id, previous, target,
    )
    return request


def rate_request(
    db: Session,
    request_id: int,
    acting_client_id: int,
    rating,
    review=None,
    *,
    now: datetime,
) -> ServiceRequest:
    """Client rates a completed request (1-5) with an optional review."""
    refresh_statuses(db, now)

    # bool is an int subclass; True must not count as a 1-star rating
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    if isinstance(review, str) and len(review) > REVIEW_MAX_LENGTH:
        raise ValidationError(f"Review cannot exceed {REVIEW_MAX_LENGTH} characters")

    request = get_request(db, request_id)
    if request.client_id != acting_client_id:
        raise ForbiddenError("Not authorized to rate this request")

    if request.status != RequestStatus.COMPLETED:
        raise InvalidTransitionError("Only completed requests can be rated")

    request.rating = rating
    if isinstance(review, str):
        request.review = review
    request.client_rated = True

    db.commit()
    logger.info("Client %d rated request %d with %d star(s)", acting_client_id, request.id, rating)
    return request


def list_pending_requests_for_client(db: Session, client_id: int, *, now: datetime) -> list[ServiceRequest]:
    """Client's direct requests the cleaner still has to act on or carry out."""
    refresh_statuses(db, now)
    return list(db.scalars(
        select(ServiceRequest)
        .where(
            ServiceRequest.client_id == client_id,
            ServiceRequest.request_type == RequestType.SPECIFIC,
            ServiceRequest.status.in_(ACTIVE_DIRECT_STATUSES),
        )
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
    ))


def list_completed_for_cleaner(db: Session, cleaner_id: int, *, now: datetime) -> list[ServiceRequest]:
    refresh_statuses(db, now)
    return list(db.scalars(
        select(ServiceRequest)
        .where(
            ServiceRequest.cleaner_id == cleaner_id,
            ServiceRequest.status == RequestStatus.COMPLETED,
        )
        .order_by(ServiceRequest.updated_at.desc(), ServiceRequest.id.desc())
    ))


def list_completed_for_client(db: Session, client_id: int, *, now: datetime) -> list[ServiceRequest]:
    refresh_statuses(db, now)
    return list(db.scalars(
        select(ServiceRequest)
        .where(
            ServiceRequest.client_id == client_id,
            ServiceRequest.status == RequestStatus.COMPLETED,
        )
        .order_by(ServiceRequest.updated_at.desc(), ServiceRequest.id.desc())
    ))


def booking_stats(db: Session) -> dict:
    """Request counts per status plus application totals."""
    stats = {"requests_by_status": {}, "total_requests": 0}
    rows = db.execute(
        select(ServiceRequest.status, func.count(ServiceRequest.id)).group_by(ServiceRequest.status)
    ).all()
    for status, count in rows:
        stats["requests_by_status"][status] = count
        stats["total_requests"] += count

    stats["open_offers"] = stats["requests_by_status"].get(RequestStatus.OPEN.value, 0)
    stats["total_applications"] = db.scalar(select(func.count(OfferApplication.id))) or 0
    return stats
