"""Offer routes: browse, apply, review applicants, select, cancel."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cleaning_market.booking import offers
from cleaning_market.booking.clock import Clock

from .dependencies import Principal, get_clock, get_db, require_role

router = APIRouter(prefix="/api")

client_only = require_role("client")
cleaner_only = require_role("cleaner")


@router.get("/requests/general")
def open_offers(
    principal: Principal = Depends(cleaner_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return [o.to_dict() for o in offers.list_open_offers(db, now=clock.now())]


@router.post("/requests/general/{request_id}/apply")
def apply(
    request_id: int,
    principal: Principal = Depends(cleaner_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    application = offers.apply_to_offer(db, request_id, principal.id, now=clock.now())
    data = application.to_dict()
    data["cleaner"] = application.cleaner.to_dict() if application.cleaner else None
    return data


@router.get("/offers/pending")
def pending_offers(
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return [o.to_dict() for o in offers.list_pending_offers_for_client(db, principal.id, now=clock.now())]


@router.post("/offers/{request_id}/select/{application_id}")
def select(
    request_id: int,
    application_id: int,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    request = offers.select_applicant(db, request_id, application_id, principal.id, now=clock.now())
    return request.to_dict()


@router.post("/offers/{request_id}/cancel")
def cancel(
    request_id: int,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return offers.cancel_offer(db, request_id, principal.id, now=clock.now()).to_dict()
