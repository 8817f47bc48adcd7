"""Offer matching: applications to open offers and the client's selection."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cleaning_market.models import Cleaner, OfferApplication, ServiceRequest

from .errors import (
    DuplicateApplicationError,
    ForbiddenError,
    NotFoundError,
    OfferExpiredError,
    OfferUnavailableError,
    ValidationError,
)
from .lifecycle import get_request
from .states import ACTIVE_DIRECT_STATUSES, ApplicationStatus, RequestStatus, RequestType
from .sweeper import refresh_statuses

logger = logging.getLogger("cleaning_market.offers")


@dataclass
class CleanerRequestView:
    """One row of a cleaner's inbox: a direct request or an offer they applied to."""

    request: ServiceRequest
    status: str
    is_applied: bool = False
    application_id: Optional[int] = None
    applied_at: Optional[datetime] = None

    @property
    def created_at(self) -> datetime:
        # SQLite hands back naive UTC; rows created in this session are still aware
        return self.request.created_at.replace(tzinfo=None)

    def to_dict(self) -> dict:
        data = self.request.to_dict()
        data["status"] = self.status
        data["is_applied"] = self.is_applied
        client = self.request.client
        data["client"] = client.contact_dict() if client else None
        if self.is_applied:
            data["application_id"] = self.application_id
            data["applied_at"] = self.applied_at.isoformat() if self.applied_at else None
        return data


@dataclass
class OfferWithApplications:
    offer: ServiceRequest
    applications: list[OfferApplication] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.offer.to_dict()
        data["applications"] = [
            {**app.to_dict(), "cleaner": app.cleaner.to_dict() if app.cleaner else None}
            for app in self.applications
        ]
        return data


def apply_to_offer(db: Session, request_id: int, cleaner_id: int, *, now: datetime) -> OfferApplication:
    """Cleaner applies to an open offer.

    Checks, in order: offer exists, offer still open, deadline not passed,
    job start not passed, cleaner exists, no earlier application by this
    cleaner.
    """
    refresh_statuses(db, now)

    offer = db.get(ServiceRequest, request_id)
    if offer is None:
        raise NotFoundError("Offer not found")

    if offer.request_type != RequestType.GENERAL or offer.status != RequestStatus.OPEN:
        raise OfferUnavailableError()

    if offer.deadline is not None and now > offer.deadline:
        raise OfferExpiredError("Offer deadline has passed")

    if now > offer.start_at:
        raise OfferExpiredError("Job time has already passed")

    if db.get(Cleaner, cleaner_id) is None:
        raise NotFoundError("Cleaner not found")

    existing = db.scalar(
        select(OfferApplication.id).where(
            OfferApplication.offer_id == request_id,
            OfferApplication.cleaner_id == cleaner_id,
        )
    )
    if existing is not None:
        raise DuplicateApplicationError()

    application = OfferApplication(
        offer_id=request_id,
        cleaner_id=cleaner_id,
        status=ApplicationStatus.PENDING,
        applied_at=now,
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost the race against a concurrent apply; the unique constraint decides
        db.rollback()
        raise DuplicateApplicationError() from exc

    logger.info("Cleaner %d applied to offer %d (application %d)", cleaner_id, request_id, application.id)
    return application


def select_applicant(
    db: Session,
    request_id: int,
    application_id: int,
    acting_client_id: int,
    *,
    now: datetime,
) -> ServiceRequest:
    """Client picks one application; the offer becomes an accepted direct booking.

    Applications are settled before the offer is promoted, and everything is
    committed as one transaction.
    """
    refresh_statuses(db, now)

    offer = db.scalar(
        select(ServiceRequest).where(ServiceRequest.id == request_id).with_for_update()
    )
    if offer is None:
        raise NotFoundError("Offer not found")

    if offer.client_id != acting_client_id:
        raise ForbiddenError("Not authorized to select cleaner for this offer")

    application = db.get(OfferApplication, application_id)
    if application is None:
        raise NotFoundError("Application not found")

    if application.offer_id != request_id:
        raise ValidationError("Invalid application for this offer")

    if offer.request_type != RequestType.GENERAL or offer.status != RequestStatus.OPEN:
        raise OfferUnavailableError()

    try:
        db.execute(
            update(OfferApplication)
            .where(
                OfferApplication.offer_id == request_id,
                OfferApplication.id != application_id,
            )
            .values(status=ApplicationStatus.REJECTED)
            .execution_options(synchronize_session="fetch")
        )
        application.status = ApplicationStatus.SELECTED
        application.selected_at = now
        db.flush()

        offer.cleaner_id = application.cleaner_id
        offer.status = RequestStatus.ACCEPTED
        offer.accepted_at = now
        offer.request_type = RequestType.SPECIFIC
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Client %d selected cleaner %d for offer %d (application %d)",
        acting_client_id, application.cleaner_id, request_id, application_id,
    )
    return offer


def cancel_offer(db: Session, request_id: int, acting_client_id: int, *, now: datetime) -> ServiceRequest:
    """Client withdraws an open offer. Pending applications are rejected."""
    refresh_statuses(db, now)

    offer = get_request(db, request_id)
    if offer.client_id != acting_client_id:
        raise ForbiddenError("Not authorized to cancel this offer")

    if offer.request_type != RequestType.GENERAL or offer.status != RequestStatus.OPEN:
        raise OfferUnavailableError()

    db.execute(
        update(OfferApplication)
        .where(
            OfferApplication.offer_id == request_id,
            OfferApplication.status == ApplicationStatus.PENDING,
        )
        .values(status=ApplicationStatus.REJECTED)
        .execution_options(synchronize_session="fetch")
    )
    offer.status = RequestStatus.CANCELLED
    db.commit()
    logger.info("Client %d cancelled offer %d", acting_client_id, request_id)
    return offer


def _visible(offer: ServiceRequest, now: datetime) -> bool:
    # Deadline and job start are independent bounds; both must hold
    if offer.deadline is not None and offer.deadline < now:
        return False
    return offer.start_at > now


def list_open_offers(db: Session, *, now: datetime) -> list[ServiceRequest]:
    """Open offers a cleaner can still apply to, newest first."""
    refresh_statuses(db, now)

    offers = db.scalars(
        select(ServiceRequest)
        .where(
            ServiceRequest.request_type == RequestType.GENERAL,
            ServiceRequest.status == RequestStatus.OPEN,
            or_(ServiceRequest.deadline.is_(None), ServiceRequest.deadline >= now),
        )
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
    )
    return [offer for offer in offers if _visible(offer, now)]


def list_requests_for_cleaner(db: Session, cleaner_id: int, *, now: datetime) -> list[CleanerRequestView]:
    """Direct requests awaiting or accepted by the cleaner, plus their pending applications.

    Applications whose offer is no longer open are left out.
    """
    refresh_statuses(db, now)

    direct = db.scalars(
        select(ServiceRequest).where(
            ServiceRequest.cleaner_id == cleaner_id,
            ServiceRequest.status.in_(ACTIVE_DIRECT_STATUSES),
        )
    )
    views = [CleanerRequestView(request=req, status=req.status) for req in direct]

    applied = db.execute(
        select(OfferApplication, ServiceRequest)
        .join(ServiceRequest, OfferApplication.offer_id == ServiceRequest.id)
        .where(
            OfferApplication.cleaner_id == cleaner_id,
            OfferApplication.status == ApplicationStatus.PENDING,
            ServiceRequest.request_type == RequestType.GENERAL,
            ServiceRequest.status == RequestStatus.OPEN,
        )
    ).all()
    for application, offer in applied:
        views.append(CleanerRequestView(
            request=offer,
            status=RequestStatus.PENDING.value,
            is_applied=True,
            application_id=application.id,
            applied_at=application.applied_at,
        ))

    views.sort(key=lambda v: (v.created_at, v.request.id), reverse=True)
    return views


def list_pending_offers_for_client(db: Session, client_id: int, *, now: datetime) -> list[OfferWithApplications]:
    """Client's open offers, each with its pending applications."""
    refresh_statuses(db, now)

    offers = db.scalars(
        select(ServiceRequest)
        .where(
            ServiceRequest.client_id == client_id,
            ServiceRequest.request_type == RequestType.GENERAL,
            ServiceRequest.status == RequestStatus.OPEN,
        )
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
    ).all()

    result = []
    for offer in offers:
        applications = db.scalars(
            select(OfferApplication)
            .where(
                OfferApplication.offer_id == offer.id,
                OfferApplication.status == ApplicationStatus.PENDING,
            )
            .order_by(OfferApplication.applied_at, OfferApplication.id)
        ).all()
        result.append(OfferWithApplications(offer=offer, applications=list(applications)))
    return result
