"""Cleaner directory: browsing, filtering and the cleaner's own profile."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from cleaning_market.models import Cleaner

from .errors import NotFoundError, ValidationError
from .states import ServiceType

logger = logging.getLogger("cleaning_market.directory")


def check_services(services: list[str]) -> list[str]:
    valid = {s.value for s in ServiceType}
    unknown = [s for s in services if s not in valid]
    if unknown:
        raise ValidationError(f"Unknown service(s): {', '.join(unknown)}")
    return list(services)


def list_cleaners(
    db: Session,
    service: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> list[Cleaner]:
    """Cleaners matching the filters, cheapest first. No filters lists everyone."""
    if service is not None:
        check_services([service])
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError("Minimum price cannot exceed maximum price")

    query = select(Cleaner).order_by(Cleaner.hourly_price, Cleaner.id)
    if min_price is not None:
        query = query.where(Cleaner.hourly_price >= min_price)
    if max_price is not None:
        query = query.where(Cleaner.hourly_price <= max_price)

    cleaners = db.scalars(query).all()
    # services is a JSON list; containment is checked here to stay backend-neutral
    if service is not None:
        cleaners = [c for c in cleaners if service in (c.services or [])]
    return list(cleaners)


def get_cleaner(db: Session, cleaner_id: int) -> Cleaner:
    cleaner = db.get(Cleaner, cleaner_id)
    if cleaner is None:
        raise NotFoundError("Cleaner not found")
    return cleaner


def update_cleaner_profile(
    db: Session,
    cleaner_id: int,
    name: Optional[str] = None,
    phone_number: Optional[str] = None,
    hourly_price: Optional[float] = None,
    services: Optional[list[str]] = None,
) -> Cleaner:
    """Apply the given profile fields; ``None`` leaves a field unchanged."""
    cleaner = get_cleaner(db, cleaner_id)

    if hourly_price is not None and hourly_price < 0:
        raise ValidationError("Hourly price cannot be negative")
    if services is not None:
        services = check_services(services)

    if name is not None:
        cleaner.name = name.strip()
    if phone_number is not None:
        cleaner.phone_number = phone_number.strip()
    if hourly_price is not None:
        cleaner.hourly_price = hourly_price
    if services is not None:
        cleaner.services = services

    db.commit()
    logger.info("Cleaner %d updated their profile", cleaner_id)
    return cleaner
