"""Booking routes: create requests, cleaner status changes, rating, job history."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cleaning_market.booking import lifecycle, offers
from cleaning_market.booking.clock import Clock
from cleaning_market.booking.errors import ForbiddenError

from .dependencies import Principal, get_clock, get_db, require_role
from .schemas import CreateRequestBody, RatingBody, StatusBody

router = APIRouter(prefix="/api")

client_only = require_role("client")
cleaner_only = require_role("cleaner")


@router.post("/requests", status_code=201)
def create_request(
    body: CreateRequestBody,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    if body.request_type == "general":
        request = lifecycle.create_offer(
            db,
            principal.id,
            service=body.service,
            date=body.date,
            start_time=body.start_time,
            end_time=body.end_time,
            budget=body.budget,
            deadline=clock.to_local(body.deadline) if body.deadline else None,
            note=body.note,
            now=now,
        )
    else:
        request = lifecycle.create_direct_request(
            db,
            principal.id,
            cleaner_id=body.cleaner_id,
            service=body.service,
            date=body.date,
            start_time=body.start_time,
            end_time=body.end_time,
            note=body.note,
            now=now,
        )
    return request.to_dict()


@router.put("/requests/{request_id}")
def update_status(
    request_id: int,
    body: StatusBody,
    principal: Principal = Depends(cleaner_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    request = lifecycle.update_request_status(db, request_id, principal.id, body.status, now=clock.now())
    return request.to_dict()


@router.put("/requests/{request_id}/rate")
def rate(
    request_id: int,
    body: RatingBody,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    request = lifecycle.rate_request(db, request_id, principal.id, body.rating, body.review, now=clock.now())
    return request.to_dict()


@router.get("/requests/client/pending")
def client_pending_requests(
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    requests = lifecycle.list_pending_requests_for_client(db, principal.id, now=clock.now())
    return [r.to_dict() for r in requests]


@router.get("/requests/cleaner/{cleaner_id}")
def cleaner_requests(
    cleaner_id: int,
    principal: Principal = Depends(cleaner_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if principal.id != cleaner_id:
        raise ForbiddenError("Not authorized to view these requests")
    views = offers.list_requests_for_cleaner(db, cleaner_id, now=clock.now())
    return [v.to_dict() for v in views]


@router.get("/jobs/cleaner/{cleaner_id}/completed")
def cleaner_completed_jobs(
    cleaner_id: int,
    principal: Principal = Depends(cleaner_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if principal.id != cleaner_id:
        raise ForbiddenError("Not authorized to view these jobs")
    jobs = lifecycle.list_completed_for_cleaner(db, cleaner_id, now=clock.now())
    return [j.to_dict() for j in jobs]


@router.get("/jobs/client/{client_id}/completed")
def client_completed_jobs(
    client_id: int,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    if principal.id != client_id:
        raise ForbiddenError("Not authorized to view these jobs")
    jobs = lifecycle.list_completed_for_client(db, client_id, now=clock.now())
    return [j.to_dict() for j in jobs]
