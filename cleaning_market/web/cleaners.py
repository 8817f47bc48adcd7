"""Cleaner directory routes: public browse and filter, and the cleaner's own profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cleaning_market.booking import directory

from .dependencies import Principal, get_db, require_role
from .schemas import CleanerFilterBody, CleanerProfileBody

router = APIRouter(prefix="/api")

cleaner_only = require_role("cleaner")


@router.get("/cleaners")
def all_cleaners(db: Session = Depends(get_db)):
    return [c.to_dict() for c in directory.list_cleaners(db)]


@router.post("/cleaners/filter")
def filter_cleaners(body: CleanerFilterBody, db: Session = Depends(get_db)):
    cleaners = directory.list_cleaners(
        db, service=body.service, min_price=body.min_price, max_price=body.max_price
    )
    return [c.to_dict() for c in cleaners]


@router.get("/cleaners/{cleaner_id}")
def cleaner_detail(cleaner_id: int, db: Session = Depends(get_db)):
    return directory.get_cleaner(db, cleaner_id).to_dict()


@router.get("/profile/cleaner")
def my_profile(principal: Principal = Depends(cleaner_only), db: Session = Depends(get_db)):
    return directory.get_cleaner(db, principal.id).to_dict()


@router.put("/profile/cleaner")
def update_my_profile(
    body: CleanerProfileBody,
    principal: Principal = Depends(cleaner_only),
    db: Session = Depends(get_db),
):
    cleaner = directory.update_cleaner_profile(
        db,
        principal.id,
        name=body.name,
        phone_number=body.phone_number,
        hourly_price=body.hourly_price,
        services=body.services,
    )
    return cleaner.to_dict()
